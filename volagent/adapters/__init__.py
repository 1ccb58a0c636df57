"""Market data sources for the volatility agent."""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Type

from .base import (
    AdapterError,
    AuthenticationError,
    DataNotAvailable,
    MarketDataBundle,
    MarketDataSource,
    RateLimitError,
)
from .chain import OptionsChain
from .fallback import FallbackDataSource

_SOURCE_REGISTRY: Dict[str, str] = {
    "mock": "volagent.adapters.mock:MockDataSource",
    "massive": "volagent.adapters.massive:MassiveDataSource",
    "etrade": "volagent.adapters.etrade:ETradeDataSource",
    "yfinance": "volagent.adapters.yfinance:YFinanceDataSource",
}


def available_providers() -> list[str]:
    return sorted(_SOURCE_REGISTRY)


def create_adapter(provider: str, **settings: Any) -> MarketDataSource:
    """Instantiate a market data source by name.

    Args:
        provider: The provider name, case-insensitive.
        **settings: Keyword arguments forwarded to the source constructor.

    Returns:
        An instance of the requested source implementation.

    Raises:
        KeyError: If the provider name is unknown.
    """

    normalized = provider.strip().lower()
    try:
        dotted_path = _SOURCE_REGISTRY[normalized]
    except KeyError as exc:
        raise KeyError(f"Unknown market data provider: {provider}") from exc

    module_name, class_name = dotted_path.split(":", 1)
    module = import_module(module_name)
    source_cls: Type[MarketDataSource] = getattr(module, class_name)
    return source_cls(**settings)


__all__ = [
    "AdapterError",
    "AuthenticationError",
    "DataNotAvailable",
    "FallbackDataSource",
    "MarketDataBundle",
    "MarketDataSource",
    "OptionsChain",
    "RateLimitError",
    "available_providers",
    "create_adapter",
]
