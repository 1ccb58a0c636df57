"""Massive (Polygon-compatible) REST market data source."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import requests

from volagent.models import MarketObservation, OptionsSnapshot

from .base import AdapterError, AuthenticationError, DataNotAvailable, MarketDataSource, RateLimitError
from .massive_mapper import (
    extract_implied_volatilities,
    map_market_history,
    map_options_chain,
    map_underlying_observation,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.massive.com"
API_KEY_VARIABLE = "MASSIVE_API_KEY"


@dataclass(frozen=True)
class MassiveTTLs:
    """Cache lifetimes in seconds per endpoint family."""

    default: float = 15.0
    market: float = 8.0
    options: float = 30.0
    reference: float = 60.0


class MassiveClient:
    """Thin REST client with a per-URL TTL cache and exponential backoff.

    Expected environment variables:
        * ``MASSIVE_API_KEY`` - bearer token used to authenticate requests.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        retries: int = 2,
        base_delay: float = 0.1,
        timeout: float = 15.0,
        ttls: MassiveTTLs = MassiveTTLs(),
        max_pages: int = 4,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._api_key = api_key if api_key is not None else os.getenv(API_KEY_VARIABLE, "")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.retries = max(0, retries)
        self.base_delay = base_delay
        self.timeout = timeout
        self.ttls = ttls
        self.max_pages = max(1, max_pages)
        self._clock = clock
        self._sleep = sleep
        self._cache: Dict[str, Tuple[float, Any]] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    def call_rest(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        ttl_seconds: Optional[float] = None,
    ) -> Any:
        """GET ``path`` (relative to the base URL, or absolute) and return decoded JSON."""

        if not self._api_key:
            raise AuthenticationError(f"{API_KEY_VARIABLE} is not configured")

        url = path if path.startswith("http") else f"{self.base_url}{path}"
        clean_params = {key: value for key, value in (params or {}).items() if value is not None}
        cache_key = requests.Request("GET", url, params=clean_params).prepare().url or url
        ttl = self.ttls.default if ttl_seconds is None else ttl_seconds

        now = self._clock()
        cached = self._cache.get(cache_key)
        if cached is not None and cached[0] > now:
            logger.debug("Cache hit for %s", cache_key)
            return cached[1]

        last_error: Exception | None = None
        for attempt in range(self.retries + 1):
            try:
                payload = self._get(url, clean_params)
            except AuthenticationError:
                raise
            except AdapterError as exc:
                last_error = exc
                logger.warning("Massive call to %s failed on attempt %d: %s", url, attempt + 1, exc)
                if attempt == self.retries:
                    break
                self._sleep(self.base_delay * 2**attempt)
                continue

            self._evict_expired(now)
            self._cache[cache_key] = (now + ttl, payload)
            return payload

        raise last_error or AdapterError(f"Massive call to {url} failed")

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._cache.items() if expires_at <= now]
        for key in expired:
            del self._cache[key]

    def _get(self, url: str, params: Mapping[str, Any]) -> Any:
        headers = {"Authorization": f"Bearer {self._api_key}", "Accept": "application/json"}
        started = time.perf_counter()
        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise AdapterError(f"Request to {url} failed: {exc}") from exc

        logger.debug("Massive %s -> %s in %.0f ms", url, response.status_code, (time.perf_counter() - started) * 1000)
        if response.status_code == 429:
            raise RateLimitError(f"Massive rate limit hit at {url}")
        if response.status_code in (401, 403):
            raise AuthenticationError(f"Massive rejected credentials ({response.status_code}) at {url}: {response.text}")
        if not response.ok:
            raise AdapterError(f"Massive API error {response.status_code} at {url}: {response.text}")

        try:
            return response.json()
        except ValueError as exc:
            raise AdapterError(f"Massive returned invalid JSON at {url}") from exc

    def try_candidates(
        self,
        paths: Iterable[str],
        params: Optional[Mapping[str, Any]] = None,
        ttl_seconds: Optional[float] = None,
    ) -> Any:
        """Return the first path that answers successfully."""

        last_error: Exception | None = None
        for path in paths:
            try:
                return self.call_rest(path, params, ttl_seconds)
            except AuthenticationError:
                raise
            except AdapterError as exc:
                logger.info("Candidate %s failed: %s", path, exc)
                last_error = exc
        raise AdapterError(f"No Massive endpoints succeeded; last error: {last_error}")

    def get_aggregates(self, symbol: str, start: date, end: date) -> Any:
        path = f"/v2/aggs/ticker/{symbol}/range/1/minute/{start.isoformat()}/{end.isoformat()}"
        return self.call_rest(path, {"adjusted": "true", "sort": "asc", "limit": 50000}, self.ttls.market)

    def get_stock_snapshot(self, symbol: str) -> Any:
        return self.call_rest("/v3/snapshot", {"ticker": symbol, "type": "stocks"}, self.ttls.market)

    def get_options_chain_snapshot(self, symbol: str) -> Dict[str, Any]:
        """Fetch ``/v3/snapshot/options/{symbol}``, following ``next_url`` pages."""

        payload = self.call_rest(f"/v3/snapshot/options/{symbol}", {"limit": 250}, self.ttls.options)
        results: List[Any] = list(payload.get("results") or [])
        next_url = payload.get("next_url")
        pages = 1
        while next_url and pages < self.max_pages:
            page = self.call_rest(next_url, None, self.ttls.options)
            results.extend(page.get("results") or [])
            next_url = page.get("next_url")
            pages += 1
        return {"status": payload.get("status"), "results": results}

    def get_ticker_reference(self, symbol: str) -> Any:
        return self.call_rest(f"/v3/reference/tickers/{symbol}", None, self.ttls.reference)

    def get_options_contracts_reference(self, symbol: str) -> Any:
        return self.call_rest(
            "/v3/reference/options/contracts",
            {"underlying_ticker": symbol},
            self.ttls.reference,
        )


class MassiveDataSource(MarketDataSource):
    """Market data source backed by :class:`MassiveClient`."""

    def __init__(
        self,
        client: Optional[MassiveClient] = None,
        history_days: int = 5,
        today: Callable[[], date] | None = None,
        clock_ms: Callable[[], int] | None = None,
        **client_settings: Any,
    ) -> None:
        self.client = client or MassiveClient(**client_settings)
        self._history_days = history_days
        self._today = today or date.today
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))

    @property
    def name(self) -> str:
        return "massive"

    def get_market_history(self, symbol: str, count: int = 50) -> List[MarketObservation]:
        now_ms = self._clock_ms()
        today = self._today()
        loaders = (
            ("aggregates", lambda: self.client.get_aggregates(symbol, today - timedelta(days=self._history_days), today)),
            ("stock snapshot", lambda: self.client.get_stock_snapshot(symbol)),
        )
        for label, load in loaders:
            try:
                observations = map_market_history(load(), symbol, now_ms)
            except AuthenticationError:
                raise
            except AdapterError as exc:
                logger.info("Massive %s unavailable for %s: %s", label, symbol, exc)
                continue
            if observations:
                return observations[-count:]

        underlying = map_underlying_observation(self.client.get_options_chain_snapshot(symbol), symbol, now_ms)
        if underlying is None:
            raise DataNotAvailable(f"No market data endpoints available for {symbol}")
        logger.info("Using underlying price from the options snapshot for %s", symbol)
        return [underlying]

    def get_options_snapshot(self, symbol: str, current_price: float) -> OptionsSnapshot:
        chain = map_options_chain(self.client.get_options_chain_snapshot(symbol), symbol, self._today())
        if chain is None:
            raise DataNotAvailable(f"Massive returned no usable option contracts for {symbol}")
        return chain.to_snapshot(current_price)

    def get_historical_iv(self, symbol: str, days: int = 252) -> List[float]:
        """Massive has no IV history endpoint; use the IVs of the current contracts."""

        return extract_implied_volatilities(self.client.get_options_chain_snapshot(symbol))[:days]


__all__ = ["DEFAULT_BASE_URL", "MassiveClient", "MassiveDataSource", "MassiveTTLs"]
