from __future__ import annotations

import logging
from datetime import date
from typing import List

import pytest

from volagent.adapters import AdapterError, DataNotAvailable, FallbackDataSource, MarketDataSource
from volagent.models import MarketObservation, OptionsSnapshot


class StubSource(MarketDataSource):
    def __init__(self, name: str, prices: List[float] = (), error: Exception | None = None):
        self._name = name
        self._prices = list(prices)
        self._error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    def get_market_history(self, symbol: str, count: int = 50) -> List[MarketObservation]:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return [
            MarketObservation(symbol=symbol, price=price, volume=100, timestamp=1_700_000_000_000 + i)
            for i, price in enumerate(self._prices)
        ]

    def get_options_snapshot(self, symbol: str, current_price: float) -> OptionsSnapshot:
        return OptionsSnapshot(symbol=symbol, expiration=date(2030, 1, 18), iv=current_price / 10)

    def get_historical_iv(self, symbol: str, days: int = 252) -> List[float]:
        return [30.0] * min(days, 3)


def test_bundle_derives_price_from_latest_observation():
    bundle = StubSource("stub", prices=[100.0, 110.0]).fetch_bundle(" spy ")

    assert bundle.symbol == "SPY"
    assert bundle.current_price == 110.0
    assert bundle.options_snapshot.iv == pytest.approx(11.0)
    assert bundle.historical_iv == (30.0, 30.0, 30.0)
    assert bundle.source == "stub"


def test_empty_history_is_not_available():
    with pytest.raises(DataNotAvailable):
        StubSource("empty").fetch_bundle("SPY")


def test_first_complete_bundle_wins():
    primary = StubSource("primary", prices=[100.0])
    backup = StubSource("backup", prices=[50.0])

    bundle = FallbackDataSource([primary, backup]).fetch_bundle("SPY")

    assert bundle.source == "primary"
    assert backup.calls == 0


def test_failing_source_falls_through_to_next(caplog):
    primary = StubSource("primary", error=AdapterError("offline"))
    backup = StubSource("backup", prices=[50.0])

    with caplog.at_level(logging.WARNING, logger="volagent.adapters.fallback"):
        bundle = FallbackDataSource([primary, backup]).fetch_bundle("SPY")

    assert bundle.source == "backup"
    assert "primary failed for SPY" in caplog.text


def test_all_sources_failing_raises():
    sources = [StubSource("a", error=AdapterError("down")), StubSource("b")]

    with pytest.raises(AdapterError, match="All data sources failed for SPY"):
        FallbackDataSource(sources).fetch_bundle("SPY")


def test_programming_errors_are_not_masked():
    sources = [StubSource("a", error=TypeError("bug")), StubSource("b", prices=[1.0])]

    with pytest.raises(TypeError):
        FallbackDataSource(sources).fetch_bundle("SPY")


def test_chain_name_and_delegation():
    chain = FallbackDataSource([StubSource("massive", prices=[10.0]), StubSource("mock", prices=[20.0])])

    assert chain.name == "massive+mock"
    assert chain.get_market_history("SPY")[0].price == 10.0


def test_chain_needs_sources():
    with pytest.raises(ValueError):
        FallbackDataSource([])
