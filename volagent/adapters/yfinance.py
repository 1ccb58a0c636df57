"""Data source backed by the public yfinance client."""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from datetime import date, datetime
from typing import Any, Callable, List, Sequence

import pandas as pd
import yfinance as yf

from volagent.models import MarketObservation, OptionsSnapshot

from .base import AdapterError, DataNotAvailable, MarketDataSource
from .chain import OptionsChain, nearest_expiration

logger = logging.getLogger(__name__)


class TimeoutError(Exception):
    """Raised when operation exceeds timeout."""


def run_with_timeout(func: Callable[[], Any], timeout_seconds: int) -> Any:
    """Run a function with a timeout using threading."""

    result_container: List[Any] = []
    exception_container: List[Exception] = []

    def wrapper() -> None:
        try:
            result_container.append(func())
        except Exception as e:
            exception_container.append(e)

    thread = threading.Thread(target=wrapper, daemon=True)
    thread.start()
    thread.join(timeout=timeout_seconds)

    if thread.is_alive():
        raise TimeoutError(f"Operation timed out after {timeout_seconds} seconds")

    if exception_container:
        raise exception_container[0]

    if result_container:
        return result_container[0]

    raise TimeoutError("Operation completed but returned no result")


class YFinanceDataSource(MarketDataSource):
    """Fetch minute bars and options chains from Yahoo Finance via yfinance."""

    def __init__(
        self,
        ticker_factory: Callable[[str], yf.Ticker] | None = None,
        max_retries: int = 3,
        base_delay: float = 0.75,
        max_delay: float = 4.0,
        jitter: float = 0.3,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._ticker_factory = ticker_factory or yf.Ticker
        self._max_retries = max(1, max_retries)
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._jitter = jitter
        self._today = today or date.today
        self._last_chain: OptionsChain | None = None

    @property
    def name(self) -> str:
        return "yfinance"

    def get_expirations(self, symbol: str) -> Sequence[date]:
        ticker = self._ticker_factory(symbol)
        expirations = self._retry(lambda: ticker.options, context="fetch expirations")
        parsed: List[date] = []
        for raw in expirations:
            try:
                parsed.append(datetime.strptime(raw, "%Y-%m-%d").date())
            except ValueError:
                logger.debug("Skipping malformed expiration %r for %s", raw, symbol)
        return parsed

    def get_market_history(self, symbol: str, count: int = 50) -> List[MarketObservation]:
        ticker = self._ticker_factory(symbol)
        bars = self._retry(
            lambda: ticker.history(period="1d", interval="1m"),
            context=f"fetch intraday history for {symbol}",
        )
        if not isinstance(bars, pd.DataFrame) or bars.empty:
            bars = self._retry(
                lambda: ticker.history(period="5d", interval="5m"),
                context=f"fetch 5-day history for {symbol}",
            )
        if not isinstance(bars, pd.DataFrame) or bars.empty:
            return []

        observations: List[MarketObservation] = []
        for stamp, row in bars.tail(count).iterrows():
            close = row.get("Close")
            if not self._is_valid_price(close):
                continue
            volume = row.get("Volume", 0)
            observations.append(
                MarketObservation(
                    symbol=symbol,
                    price=float(close),
                    volume=int(volume) if pd.notna(volume) and volume > 0 else 0,
                    timestamp=int(pd.Timestamp(stamp).timestamp() * 1000),
                )
            )
        return observations

    def get_chain(self, symbol: str, expiration: date) -> OptionsChain:
        ticker = self._ticker_factory(symbol)
        expiration_str = expiration.strftime("%Y-%m-%d")
        option_chain = self._retry(
            lambda: ticker.option_chain(expiration_str),
            context=f"fetch options chain for {symbol} {expiration_str}",
        )

        calls_frame = getattr(option_chain, "calls", None)
        puts_frame = getattr(option_chain, "puts", None)
        return OptionsChain(
            symbol=symbol,
            expiration=expiration,
            calls=calls_frame.copy() if calls_frame is not None else pd.DataFrame(),
            puts=puts_frame.copy() if puts_frame is not None else pd.DataFrame(),
        )

    def get_options_snapshot(self, symbol: str, current_price: float) -> OptionsSnapshot:
        expiration = nearest_expiration(self.get_expirations(symbol), self._today())
        if expiration is None:
            raise DataNotAvailable(f"No listed expirations for {symbol}")

        chain = self.get_chain(symbol, expiration)
        chain.underlying_price = current_price
        self._last_chain = chain
        return chain.to_snapshot(current_price)

    def get_historical_iv(self, symbol: str, days: int = 252) -> List[float]:
        """Yahoo has no IV history; use the contract IVs of the latest chain."""

        chain = self._last_chain
        if chain is None or chain.symbol != symbol:
            expiration = nearest_expiration(self.get_expirations(symbol), self._today())
            if expiration is None:
                return []
            chain = self.get_chain(symbol, expiration)
        return chain.implied_volatilities()[:days]

    def _retry(self, operation: Callable[[], Any], context: str, timeout_seconds: int = 30) -> Any:
        last_error: Exception | None = None
        for attempt in range(self._max_retries):
            try:
                return run_with_timeout(operation, timeout_seconds)

            except TimeoutError as timeout_exc:
                last_error = timeout_exc
                logger.warning(
                    "Timeout after %ss while trying to %s (attempt %d/%d)",
                    timeout_seconds,
                    context,
                    attempt + 1,
                    self._max_retries,
                )
                if attempt == self._max_retries - 1:
                    raise AdapterError(f"Timeout after {timeout_seconds}s while trying to {context}") from timeout_exc
                self._apply_rate_limit_backoff(attempt)

            except Exception as exc:  # yfinance raises generic errors
                last_error = exc
                logger.info("Attempt %d to %s failed: %s", attempt + 1, context, exc)
                if attempt == self._max_retries - 1:
                    break
                self._apply_rate_limit_backoff(attempt)

        if last_error is not None:
            raise AdapterError(f"Failed to {context}: {last_error}") from last_error
        raise AdapterError(f"Failed to {context}: unknown error")

    def _apply_rate_limit_backoff(self, attempt: int) -> None:
        delay = min(self._max_delay, self._base_delay * (1 + attempt))
        delay += random.uniform(0, self._jitter)
        time.sleep(delay)

    def _is_valid_price(self, value: Any) -> bool:
        if value in (None, 0, ""):
            return False
        try:
            price_val = float(value)
        except (TypeError, ValueError):
            return False
        return math.isfinite(price_val) and price_val > 0


__all__ = ["YFinanceDataSource", "run_with_timeout"]
