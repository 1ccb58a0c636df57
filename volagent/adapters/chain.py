"""Normalized options chain frames and their reduction to an :class:`OptionsSnapshot`."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from volagent.models import OptionsSnapshot, StrikeQuote

CHAIN_COLUMNS = ["strike", "bid", "ask", "volume", "openInterest", "impliedVolatility"]
TARGET_DAYS_TO_EXPIRATION = 30


def nearest_expiration(expirations: Sequence[date], today: date | None = None) -> Optional[date]:
    """Pick the expiration closest to thirty days out, ignoring expired dates."""

    reference = today or date.today()
    target = reference + timedelta(days=TARGET_DAYS_TO_EXPIRATION)
    candidates = [expiration for expiration in expirations if expiration >= reference]
    if not candidates:
        return None
    return min(candidates, key=lambda expiration: abs((expiration - target).days))


def _side(frame: Optional[pd.DataFrame], prefix: str) -> pd.DataFrame:
    if frame is None or frame.empty:
        normalized = pd.DataFrame(columns=CHAIN_COLUMNS)
    else:
        normalized = frame.reindex(columns=CHAIN_COLUMNS)
    for column in CHAIN_COLUMNS:
        normalized[column] = pd.to_numeric(normalized[column], errors="coerce").astype(float)
    return normalized.rename(columns={column: f"{prefix}_{column}" for column in CHAIN_COLUMNS[1:]})


@dataclass
class OptionsChain:
    """Calls and puts for one symbol and expiration.

    Frames use the column names ``strike``, ``bid``, ``ask``, ``volume``,
    ``openInterest`` and ``impliedVolatility`` (a fraction, 0.25 = 25%).
    Missing columns are treated as zero.
    """

    symbol: str
    expiration: date
    calls: pd.DataFrame = field(default_factory=pd.DataFrame)
    puts: pd.DataFrame = field(default_factory=pd.DataFrame)
    underlying_price: Optional[float] = None

    def to_frame(self) -> pd.DataFrame:
        """Join calls and puts on strike into one row per strike."""

        merged = pd.merge(_side(self.calls, "call"), _side(self.puts, "put"), on="strike", how="outer")
        merged = merged.dropna(subset=["strike"])
        merged = merged[merged["strike"] > 0].fillna(0.0)
        if merged.empty:
            return merged.reset_index(drop=True)

        for prefix in ("call", "put"):
            bid, ask = merged[f"{prefix}_bid"], merged[f"{prefix}_ask"]
            crossed = (bid > 0) & (ask > 0) & (ask < bid)
            merged[f"{prefix}_ask"] = np.where(crossed, bid, ask)

        return merged.groupby("strike", as_index=False).max().sort_values("strike", ignore_index=True)

    def implied_volatilities(self) -> List[float]:
        """Positive contract IVs in percent."""

        values: List[float] = []
        for frame in (self.calls, self.puts):
            if frame is None or frame.empty or "impliedVolatility" not in frame.columns:
                continue
            series = pd.to_numeric(frame["impliedVolatility"], errors="coerce").dropna()
            values.extend(float(iv) * 100 for iv in series if math.isfinite(iv) and iv > 0)
        return values

    def strikes(self) -> List[StrikeQuote]:
        return [
            StrikeQuote(
                strike=row.strike,
                call_bid=row.call_bid,
                call_ask=row.call_ask,
                call_volume=row.call_volume,
                call_open_interest=row.call_openInterest,
                put_bid=row.put_bid,
                put_ask=row.put_ask,
                put_volume=row.put_volume,
                put_open_interest=row.put_openInterest,
            )
            for row in self.to_frame().itertuples(index=False)
        ]

    def to_snapshot(self, current_price: Optional[float] = None) -> OptionsSnapshot:
        """Aggregate the chain, using the at-the-money call as representative quote."""

        strikes = self.strikes()
        ivs = self.implied_volatilities()
        price = current_price if current_price is not None else self.underlying_price
        representative = _representative_quote(strikes, price)

        return OptionsSnapshot(
            symbol=self.symbol,
            strikes=strikes,
            expiration=self.expiration,
            iv=sum(ivs) / len(ivs) if ivs else 0.0,
            volume=sum(quote.call_volume + quote.put_volume for quote in strikes),
            open_interest=sum(quote.call_open_interest + quote.put_open_interest for quote in strikes),
            bid=representative.call_bid if representative else 0.0,
            ask=representative.call_ask if representative else 0.0,
        )


def _representative_quote(strikes: Sequence[StrikeQuote], price: Optional[float]) -> Optional[StrikeQuote]:
    two_sided = [quote for quote in strikes if quote.call_bid > 0 and quote.call_ask > 0]
    if not two_sided:
        return None
    if price is None or not math.isfinite(price):
        return two_sided[len(two_sided) // 2]
    return min(two_sided, key=lambda quote: abs(quote.strike - price))


__all__ = ["CHAIN_COLUMNS", "OptionsChain", "nearest_expiration"]
