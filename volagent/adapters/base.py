"""Core abstractions for market data sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Sequence

from volagent.models import MarketObservation, OptionsSnapshot


class AdapterError(Exception):
    """Base exception raised for data source failures."""


class RateLimitError(AdapterError):
    """Raised when a provider reports rate limiting errors."""


class DataNotAvailable(AdapterError):
    """Raised when requested data is not available from a provider."""


class AuthenticationError(AdapterError):
    """Raised when a provider rejects or lacks credentials."""


@dataclass(frozen=True)
class MarketDataBundle:
    """Complete, consistent input triple for one analysis call."""

    symbol: str
    market_history: Sequence[MarketObservation]
    options_snapshot: OptionsSnapshot
    historical_iv: Sequence[float] = field(default_factory=tuple)
    source: str = "unknown"

    @property
    def current_price(self) -> float:
        return self.market_history[-1].price


class MarketDataSource(ABC):
    """Abstract base class for fetching market and options data from a provider."""

    history_length: int = 50
    iv_history_days: int = 252

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable provider name."""

    @abstractmethod
    def get_market_history(self, symbol: str, count: int = 50) -> List[MarketObservation]:
        """Return observations ordered oldest to newest."""

    @abstractmethod
    def get_options_snapshot(self, symbol: str, current_price: float) -> OptionsSnapshot:
        """Return the options chain snapshot for a symbol."""

    @abstractmethod
    def get_historical_iv(self, symbol: str, days: int = 252) -> List[float]:
        """Return past implied volatility readings in percent."""

    def fetch_bundle(self, symbol: str) -> MarketDataBundle:
        """Fetch everything one analysis needs, deriving the price from the latest observation."""

        normalized = symbol.upper().strip()
        history = self.get_market_history(normalized, self.history_length)
        if not history:
            raise DataNotAvailable(f"{self.name} returned no market observations for {normalized}")

        snapshot = self.get_options_snapshot(normalized, history[-1].price)
        historical_iv = self.get_historical_iv(normalized, self.iv_history_days)
        return MarketDataBundle(
            symbol=normalized,
            market_history=tuple(history),
            options_snapshot=snapshot,
            historical_iv=tuple(historical_iv),
            source=self.name,
        )


__all__ = [
    "AdapterError",
    "AuthenticationError",
    "DataNotAvailable",
    "MarketDataBundle",
    "MarketDataSource",
    "RateLimitError",
]
