"""Brokerage data source for the E*TRADE market API.

The OAuth 1.0a handshake and request signing happen outside this module:
callers hand in a session that already signs requests (for example an
``OAuth1Session``). This source only issues GETs and maps the JSON.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional

import pandas as pd
import requests

from volagent.models import MarketObservation, OptionsSnapshot

from .base import AdapterError, AuthenticationError, DataNotAvailable, MarketDataSource, RateLimitError
from .chain import CHAIN_COLUMNS, OptionsChain

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = "https://apisb.etrade.com"
PRODUCTION_BASE_URL = "https://api.etrade.com"


class ETradeDataSource(MarketDataSource):
    """Quotes and option chains from E*TRADE through an authenticated session."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        sandbox: bool = True,
        base_url: Optional[str] = None,
        strike_count: int = 10,
        timeout: float = 15.0,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self.session = session
        self.base_url = (base_url or (SANDBOX_BASE_URL if sandbox else PRODUCTION_BASE_URL)).rstrip("/")
        self.strike_count = strike_count
        self.timeout = timeout
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))
        self._last_chain: Optional[OptionsChain] = None

    @property
    def name(self) -> str:
        return "etrade"

    def _request(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        if self.session is None:
            raise AuthenticationError("E*TRADE session is not authenticated")

        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.get(url, params=params, headers={"Accept": "application/json"}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise AdapterError(f"E*TRADE request to {endpoint} failed: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitError("E*TRADE rate limit reached")
        if response.status_code == 401:
            raise AuthenticationError(f"E*TRADE rejected the access token: {response.text}")
        if not response.ok:
            raise AdapterError(f"E*TRADE API request failed: {response.status_code} {response.text}")

        try:
            return response.json()
        except ValueError as exc:
            raise AdapterError(f"E*TRADE returned invalid JSON for {endpoint}") from exc

    def get_quote(self, symbol: str) -> MarketObservation:
        payload = self._request(f"/v1/market/quote/{symbol}.json")
        quotes = payload.get("QuoteResponse", {}).get("QuoteData") or []
        if not quotes:
            raise DataNotAvailable(f"No market data found for {symbol}")

        quote = quotes[0]
        all_points = quote.get("All") or quote.get("AllPoints") or {}
        try:
            price = float(quote.get("lastTrade") or all_points.get("lastTrade") or 0)
            volume = int(quote.get("volume") or all_points.get("totalVolume") or 0)
        except (TypeError, ValueError) as exc:
            raise AdapterError(f"E*TRADE quote for {symbol} is malformed: {exc}") from exc
        if price <= 0:
            raise DataNotAvailable(f"E*TRADE quote for {symbol} has no last trade")

        return MarketObservation(
            symbol=quote.get("Product", {}).get("symbol") or symbol,
            price=price,
            volume=volume,
            timestamp=self._clock_ms(),
        )

    def get_market_history(self, symbol: str, count: int = 50) -> List[MarketObservation]:
        """E*TRADE exposes no intraday series; the history is the current quote alone."""

        return [self.get_quote(symbol)]

    def get_chain(self, symbol: str, expiration: Optional[str] = None) -> OptionsChain:
        params: Dict[str, Any] = {"symbol": symbol, "chainType": "CALLPUT", "strikeCount": self.strike_count}
        if expiration:
            year, month, day = expiration.split("-")
            params.update({"expiryYear": year, "expiryMonth": month, "expiryDay": day})

        payload = self._request("/v1/market/optionchains.json", params)
        response = payload.get("OptionChainResponse") or {}
        pairs = response.get("OptionPair") or []
        if not pairs:
            raise DataNotAvailable(f"No options chain found for {symbol}")

        calls: List[Dict[str, Any]] = []
        puts: List[Dict[str, Any]] = []
        for pair in pairs:
            for key, bucket in (("Call", calls), ("Put", puts)):
                option = pair.get(key)
                if option:
                    bucket.append(_option_row(option))

        return OptionsChain(
            symbol=symbol,
            expiration=_expiration(response, pairs),
            calls=pd.DataFrame(calls, columns=CHAIN_COLUMNS),
            puts=pd.DataFrame(puts, columns=CHAIN_COLUMNS),
        )

    def get_options_snapshot(self, symbol: str, current_price: float) -> OptionsSnapshot:
        chain = self.get_chain(symbol)
        self._last_chain = chain
        return chain.to_snapshot(current_price)

    def get_historical_iv(self, symbol: str, days: int = 252) -> List[float]:
        """No IV history endpoint exists; use the call IVs of the latest chain."""

        chain = self._last_chain if self._last_chain and self._last_chain.symbol == symbol else self.get_chain(symbol)
        return OptionsChain(symbol=symbol, expiration=chain.expiration, calls=chain.calls).implied_volatilities()[:days]


def _option_row(option: Mapping[str, Any]) -> Dict[str, Any]:
    greeks = option.get("OptionGreeks") or {}
    return {
        "strike": option.get("strikePrice"),
        "bid": option.get("bid") or 0,
        "ask": option.get("ask") or 0,
        "volume": option.get("volume") or 0,
        "openInterest": option.get("openInterest") or 0,
        "impliedVolatility": greeks.get("iv") or option.get("impliedVolatility") or 0,
    }


def _to_date(year: Any, month: Any, day: Any) -> date:
    try:
        return date(int(year), int(month), int(day))
    except (TypeError, ValueError) as exc:
        raise AdapterError(f"E*TRADE chain has an invalid expiration {year}-{month}-{day}") from exc


def _expiration(response: Mapping[str, Any], pairs: List[Mapping[str, Any]]) -> date:
    selected = response.get("SelectedED") or {}
    if selected.get("year"):
        return _to_date(selected.get("year"), selected.get("month"), selected.get("day"))
    for pair in pairs:
        for key in ("Call", "Put"):
            option = pair.get(key) or {}
            if option.get("expiryYear"):
                return _to_date(option.get("expiryYear"), option.get("expiryMonth"), option.get("expiryDay"))
    raise DataNotAvailable("E*TRADE chain carries no expiration date")


__all__ = ["ETradeDataSource", "PRODUCTION_BASE_URL", "SANDBOX_BASE_URL"]
