"""Volatility-selling context agent: metrics, state machine and data sources."""

from __future__ import annotations

from typing import Any


def get_data_source(*args: Any, **kwargs: Any):  # pragma: no cover - thin wrapper
    """Lazily import the configured data source factory."""

    from .config import get_data_source as _impl

    return _impl(*args, **kwargs)


__all__ = ["get_data_source"]
