"""Chain several data sources, returning the first complete bundle."""

from __future__ import annotations

import logging
from typing import List, Sequence

from volagent.models import MarketObservation, OptionsSnapshot

from .base import AdapterError, MarketDataBundle, MarketDataSource

logger = logging.getLogger(__name__)


class FallbackDataSource(MarketDataSource):
    """Try each source in order; a source either supplies the whole bundle or is skipped.

    Individual getters delegate to the first source. Only :meth:`fetch_bundle`
    falls back, so a bundle never mixes providers.
    """

    def __init__(self, sources: Sequence[MarketDataSource]) -> None:
        if not sources:
            raise ValueError("FallbackDataSource needs at least one source")
        self.sources: List[MarketDataSource] = list(sources)

    @property
    def name(self) -> str:
        return "+".join(source.name for source in self.sources)

    def get_market_history(self, symbol: str, count: int = 50) -> List[MarketObservation]:
        return self.sources[0].get_market_history(symbol, count)

    def get_options_snapshot(self, symbol: str, current_price: float) -> OptionsSnapshot:
        return self.sources[0].get_options_snapshot(symbol, current_price)

    def get_historical_iv(self, symbol: str, days: int = 252) -> List[float]:
        return self.sources[0].get_historical_iv(symbol, days)

    def fetch_bundle(self, symbol: str) -> MarketDataBundle:
        errors: List[str] = []
        for source in self.sources:
            try:
                bundle = source.fetch_bundle(symbol)
            except AdapterError as exc:
                logger.warning("Data source %s failed for %s, trying next: %s", source.name, symbol, exc)
                errors.append(f"{source.name}: {exc}")
                continue
            if errors:
                logger.info("Served %s from fallback source %s", symbol, source.name)
            return bundle

        raise AdapterError(f"All data sources failed for {symbol}: {'; '.join(errors)}")


__all__ = ["FallbackDataSource"]
