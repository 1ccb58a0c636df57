"""Translate Massive REST payloads into observations and options chains."""

from __future__ import annotations

import logging
import math
import re
from collections import defaultdict
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from volagent.models import MarketObservation

from .chain import CHAIN_COLUMNS, OptionsChain, nearest_expiration

logger = logging.getLogger(__name__)

OCC_TICKER = re.compile(r"^(?:O:)?[A-Z.]+\d{6}([CP])\d{8}$")

_PRICE_KEYS = ("last_trade_price", "price", "last", "close", "c", "lastPrice")
_VOLUME_KEYS = ("volume", "v")
_TIMESTAMP_KEYS = ("t", "timestamp", "time", "updated", "last_updated")


def _results(payload: Any) -> List[Mapping[str, Any]]:
    if isinstance(payload, Mapping):
        results = payload.get("results")
        if results is None and isinstance(payload.get("data"), Mapping):
            results = payload["data"].get("results")
        if isinstance(results, Mapping):
            return [results]
        if isinstance(results, list):
            return [item for item in results if isinstance(item, Mapping)]
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, Mapping)]
    return []


def _number(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _first_number(item: Mapping[str, Any], keys: Iterable[str]) -> Optional[float]:
    for key in keys:
        number = _number(item.get(key))
        if number is not None:
            return number
    return None


def _to_epoch_ms(value: Any) -> Optional[int]:
    if isinstance(value, str):
        try:
            return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
        except ValueError:
            return None
    number = _number(value)
    if number is None or number <= 0:
        return None
    if number > 1e17:  # nanoseconds
        return int(number // 1_000_000)
    if number > 1e14:  # microseconds
        return int(number // 1_000)
    if number < 1e11:  # seconds
        return int(number * 1000)
    return int(number)


def _observation(item: Mapping[str, Any], symbol: str, fallback_ms: int) -> Optional[MarketObservation]:
    last_trade = item.get("last_trade") if isinstance(item.get("last_trade"), Mapping) else {}
    session = item.get("session") if isinstance(item.get("session"), Mapping) else {}
    quote = item.get("quote") if isinstance(item.get("quote"), Mapping) else {}

    price = (
        _number(last_trade.get("price"))
        or _first_number(item, _PRICE_KEYS)
        or _number(quote.get("lastPrice"))
        or _number(session.get("close"))
    )
    if price is None or price <= 0:
        return None

    volume = _first_number(item, _VOLUME_KEYS) or _number(session.get("volume")) or _number(quote.get("volume")) or 0
    timestamp = None
    for key in _TIMESTAMP_KEYS:
        timestamp = _to_epoch_ms(item.get(key))
        if timestamp is not None:
            break
    if timestamp is None:
        timestamp = _to_epoch_ms(last_trade.get("sip_timestamp")) or fallback_ms

    return MarketObservation(symbol=symbol, price=price, volume=max(0, int(volume)), timestamp=timestamp)


def map_market_history(payload: Any, symbol: str, now_ms: int) -> List[MarketObservation]:
    """Map aggregate bars, quote lists or a single snapshot to observations.

    Entries without a positive price are dropped. The result is ordered
    oldest to newest.
    """

    items = _results(payload)
    if not items and isinstance(payload, Mapping):
        items = [payload]

    observations = [
        observation
        for observation in (_observation(item, symbol, now_ms) for item in items)
        if observation is not None
    ]
    return sorted(observations, key=lambda observation: observation.timestamp)


def map_underlying_observation(payload: Any, symbol: str, now_ms: int) -> Optional[MarketObservation]:
    """Extract the underlying asset quote embedded in an options snapshot."""

    for contract in _results(payload):
        underlying = contract.get("underlying_asset")
        if isinstance(underlying, Mapping):
            observation = _observation(underlying, symbol, now_ms)
            if observation is not None:
                return observation
    return None


def _contract_fields(contract: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    details = contract.get("details") if isinstance(contract.get("details"), Mapping) else contract
    strike = _number(details.get("strike_price"))
    raw_expiration = details.get("expiration_date")
    contract_type = str(details.get("contract_type") or "").lower()

    if contract_type not in {"call", "put"}:
        match = OCC_TICKER.match(str(details.get("ticker") or contract.get("ticker") or ""))
        contract_type = {"C": "call", "P": "put"}.get(match.group(1), "") if match else ""

    if not strike or not raw_expiration or not contract_type:
        logger.debug("Skipping contract with missing fields: %s", contract.get("ticker"))
        return None

    try:
        expiration = datetime.strptime(str(raw_expiration)[:10], "%Y-%m-%d").date()
    except ValueError:
        return None

    last_quote = contract.get("last_quote") if isinstance(contract.get("last_quote"), Mapping) else {}
    last_trade = contract.get("last_trade") if isinstance(contract.get("last_trade"), Mapping) else {}
    day = contract.get("day") if isinstance(contract.get("day"), Mapping) else {}
    trade_price = _number(last_trade.get("price"))

    bid = _number(last_quote.get("bid"))
    ask = _number(last_quote.get("ask"))
    volume = _number(day.get("volume"))
    if volume is None:
        volume = _number(last_trade.get("size"))

    return {
        "type": contract_type,
        "expiration": expiration,
        "strike": strike,
        "bid": bid if bid is not None else (trade_price or 0.0),
        "ask": ask if ask is not None else (trade_price or 0.0),
        "volume": volume or 0.0,
        "openInterest": _number(contract.get("open_interest")) or 0.0,
        "impliedVolatility": _number(contract.get("implied_volatility")) or 0.0,
    }


def map_options_chain(payload: Any, symbol: str, today: date | None = None) -> Optional[OptionsChain]:
    """Group snapshot contracts by expiration and keep the one nearest thirty days out."""

    by_expiration: Dict[date, Dict[str, List[Dict[str, Any]]]] = defaultdict(lambda: {"call": [], "put": []})
    underlying_price = None

    for contract in _results(payload):
        fields = _contract_fields(contract)
        if fields is None:
            continue
        by_expiration[fields["expiration"]][fields["type"]].append(fields)
        if underlying_price is None and isinstance(contract.get("underlying_asset"), Mapping):
            underlying_price = _number(contract["underlying_asset"].get("price"))

    expiration = nearest_expiration(list(by_expiration), today)
    if expiration is None:
        return None

    sides = by_expiration[expiration]
    logger.info(
        "Mapped %d calls and %d puts for %s expiring %s",
        len(sides["call"]),
        len(sides["put"]),
        symbol,
        expiration,
    )
    return OptionsChain(
        symbol=symbol,
        expiration=expiration,
        calls=pd.DataFrame(sides["call"], columns=CHAIN_COLUMNS),
        puts=pd.DataFrame(sides["put"], columns=CHAIN_COLUMNS),
        underlying_price=underlying_price,
    )


def extract_implied_volatilities(payload: Any) -> List[float]:
    """Positive contract IVs across every expiration in the payload, in percent."""

    values: List[float] = []
    for contract in _results(payload):
        iv = _number(contract.get("implied_volatility"))
        if iv is not None and iv > 0:
            values.append(iv * 100)
    return values


__all__ = [
    "extract_implied_volatilities",
    "map_market_history",
    "map_options_chain",
    "map_underlying_observation",
]
