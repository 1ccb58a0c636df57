from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence

import pytest

from volagent.models import MarketObservation, OptionsSnapshot, StrikeQuote

START_MS = 1_700_000_000_000
EXPIRATION = date(2030, 1, 18)


def build_history(
    prices: Sequence[float],
    volumes: Optional[Sequence[int]] = None,
    symbol: str = "TEST",
) -> List[MarketObservation]:
    volumes = volumes if volumes is not None else [1_000_000] * len(prices)
    return [
        MarketObservation(symbol=symbol, price=price, volume=volume, timestamp=START_MS + i * 60_000)
        for i, (price, volume) in enumerate(zip(prices, volumes))
    ]


def build_strike(
    strike: float,
    call_bid: float = 1.0,
    call_ask: float = 1.05,
    call_volume: int = 100,
    call_open_interest: int = 500,
) -> StrikeQuote:
    return StrikeQuote(
        strike=strike,
        call_bid=call_bid,
        call_ask=call_ask,
        call_volume=call_volume,
        call_open_interest=call_open_interest,
        put_bid=call_bid,
        put_ask=call_ask,
        put_volume=call_volume,
        put_open_interest=call_open_interest,
    )


def build_snapshot(
    strikes: Iterable[StrikeQuote] = (),
    iv: float = 30.0,
    volume: int = 2000,
    open_interest: int = 8000,
    bid: float = 2.0,
    ask: float = 2.02,
    symbol: str = "TEST",
    expiration: date = EXPIRATION,
) -> OptionsSnapshot:
    return OptionsSnapshot(
        symbol=symbol,
        strikes=list(strikes),
        expiration=expiration,
        iv=iv,
        volume=volume,
        open_interest=open_interest,
        bid=bid,
        ask=ask,
    )


@pytest.fixture
def make_history():
    return build_history


@pytest.fixture
def make_strike():
    return build_strike


@pytest.fixture
def make_snapshot():
    return build_snapshot
