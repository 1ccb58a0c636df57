"""Seeded synthetic data source for development, demos and tests."""

from __future__ import annotations

import random
import time
from datetime import date, timedelta
from typing import Callable, List, Optional

from volagent.models import MarketObservation, OptionsSnapshot, StrikeQuote

from .base import MarketDataSource

MINUTE_MS = 60_000


class MockDataSource(MarketDataSource):
    """Generate random-walk prices, a synthetic strike ladder and an IV history.

    Every draw comes from a private :class:`random.Random`, so two sources
    built with the same ``seed`` produce identical sequences.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        history_length: int = 50,
        iv_history_days: int = 252,
        clock: Callable[[], int] | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._rng = random.Random(seed)
        self.history_length = history_length
        self.iv_history_days = iv_history_days
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._today = today or date.today

    @property
    def name(self) -> str:
        return "mock"

    def get_market_history(self, symbol: str, count: int = 50) -> List[MarketObservation]:
        rng = self._rng
        now = self._clock()
        base_price = 100 + rng.random() * 50
        history: List[MarketObservation] = []

        for i in range(count):
            volatility = 0.02 + rng.random() * 0.05
            change = (rng.random() - 0.5) * volatility * base_price
            price = base_price if i == 0 else max(0.01, history[-1].price + change)
            history.append(
                MarketObservation(
                    symbol=symbol,
                    price=round(price, 2),
                    volume=int(1_000_000 + rng.random() * 2_000_000),
                    timestamp=now - (count - i) * MINUTE_MS,
                )
            )

        return history

    def get_options_snapshot(self, symbol: str, current_price: float) -> OptionsSnapshot:
        rng = self._rng
        strikes = self._generate_strikes(current_price)

        atm = next((quote for quote in strikes if abs(quote.strike - current_price) < 2.5), None)
        mid = atm.call_mid if atm else 2.5

        return OptionsSnapshot(
            symbol=symbol,
            strikes=strikes,
            expiration=self._today() + timedelta(days=30),
            iv=25 + rng.random() * 30,
            volume=int(1000 + rng.random() * 2000),
            open_interest=int(5000 + rng.random() * 10000),
            bid=mid * 0.95,
            ask=mid * 1.05,
        )

    def get_historical_iv(self, symbol: str, days: int = 252) -> List[float]:
        base_iv = 30.0
        return [
            max(10.0, min(80.0, base_iv + (self._rng.random() - 0.5) * 10))
            for _ in range(days)
        ]

    def _generate_strikes(self, current_price: float) -> List[StrikeQuote]:
        rng = self._rng
        base_strike = round(current_price / 5) * 5
        strikes: List[StrikeQuote] = []

        for offset in range(-5, 11):
            strike = base_strike + offset * 5
            if strike <= 0:
                continue
            otm_call = strike > current_price
            moneyness = abs(strike - current_price) / current_price
            near_bid, near_ask = max(0.1, 2 - moneyness * 10), max(0.2, 2.5 - moneyness * 10)
            deep_bid, deep_ask = max(0.5, 5 - moneyness * 5), max(0.6, 5.5 - moneyness * 5)
            thin_volume, thick_volume = int(50 + rng.random() * 200), int(100 + rng.random() * 500)
            thin_oi, thick_oi = int(100 + rng.random() * 400), int(200 + rng.random() * 800)
            put_thin_volume, put_thick_volume = int(50 + rng.random() * 200), int(100 + rng.random() * 500)
            put_thin_oi, put_thick_oi = int(100 + rng.random() * 400), int(200 + rng.random() * 800)

            strikes.append(
                StrikeQuote(
                    strike=strike,
                    call_bid=near_bid if otm_call else deep_bid,
                    call_ask=near_ask if otm_call else deep_ask,
                    call_volume=thin_volume if otm_call else thick_volume,
                    call_open_interest=thin_oi if otm_call else thick_oi,
                    put_bid=deep_bid if otm_call else near_bid,
                    put_ask=deep_ask if otm_call else near_ask,
                    put_volume=put_thick_volume if otm_call else put_thin_volume,
                    put_open_interest=put_thick_oi if otm_call else put_thin_oi,
                )
            )

        return strikes


__all__ = ["MockDataSource"]
