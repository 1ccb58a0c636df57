"""HTTP interface for the volatility agent."""

from .main import app

__all__ = ["app"]
