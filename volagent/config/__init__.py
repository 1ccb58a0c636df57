"""Configuration helpers for the API, the CLI and scripts."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

from volagent.adapters import FallbackDataSource, MarketDataSource, create_adapter

from .loader import AppSettings, get_settings, reset_settings_cache

DEFAULT_PROVIDER = "mock"
PROVIDER_VARIABLE = "MARKET_DATA_PROVIDER"


def _source_settings(name: str, settings: AppSettings, mock_seed: Optional[int] = None) -> Dict[str, Any]:
    if name == "mock":
        options: Dict[str, Any] = {
            "seed": settings.mock.seed if mock_seed is None else mock_seed,
            "history_length": settings.mock.history_length,
            "iv_history_days": settings.mock.iv_history_length,
        }
    elif name == "massive":
        from volagent.adapters.massive import MassiveTTLs

        options = {
            "base_url": settings.massive.base_url,
            "retries": settings.massive.retries,
            "base_delay": settings.massive.base_delay,
            "ttls": MassiveTTLs(**settings.massive.ttls.model_dump()),
        }
    else:
        options = {}
    options.update(settings.adapter.settings_for(name))
    return options


def _provider_chain(provider: str, settings: AppSettings) -> List[str]:
    chain = [provider]
    for name in settings.adapter.fallback:
        if name not in chain:
            chain.append(name)
    return chain


def build_data_source(provider: Optional[str] = None, *, mock_seed: Optional[int] = None) -> MarketDataSource:
    """Build a fresh fallback chain: the chosen provider followed by the configured fallbacks."""

    settings = get_settings()
    name = (provider or os.getenv(PROVIDER_VARIABLE) or settings.adapter.provider or DEFAULT_PROVIDER).strip().lower()
    sources: List[MarketDataSource] = []
    for source_name in _provider_chain(name, settings):
        try:
            sources.append(create_adapter(source_name, **_source_settings(source_name, settings, mock_seed)))
        except KeyError as exc:
            raise ValueError(f"Unsupported market data provider: {source_name}") from exc
    return FallbackDataSource(sources)


@lru_cache(maxsize=None)
def _get_data_source(provider: Optional[str]) -> MarketDataSource:
    return build_data_source(provider)


def get_data_source(provider: Optional[str] = None) -> MarketDataSource:
    """Return the configured data source, wrapped in its fallback chain."""

    return _get_data_source(provider)


def reset_data_source_cache() -> None:
    """Clear the cached data source instance (useful for tests)."""

    _get_data_source.cache_clear()


__all__ = [
    "AppSettings",
    "DEFAULT_PROVIDER",
    "PROVIDER_VARIABLE",
    "build_data_source",
    "get_data_source",
    "get_settings",
    "reset_data_source_cache",
    "reset_settings_cache",
]
