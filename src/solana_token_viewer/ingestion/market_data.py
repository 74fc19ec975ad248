"""Client for USD market statistics served by the CoinGecko API."""

from __future__ import annotations

from threading import Lock
from time import perf_counter
from typing import Any, Dict, Mapping, Optional

import requests
from cachetools import TTLCache

from ..config.settings import MarketDataConfig, get_app_config
from ..datalake.schemas import MarketSnapshot
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS

_PRICE_FIELDS = {
    "price_usd": "current_price",
    "market_cap_usd": "market_cap",
    "volume_24h_usd": "total_volume",
}


class MarketDataError(RuntimeError):
    """Raised when a market data lookup does not yield a usable snapshot."""


class MarketDataClient:
    """Performs one ``GET <base>/coins/<mint>`` per lookup.

    Lookups are memoized per mint when ``memoize`` is enabled. Failures are
    memoized as well so accounts sharing an unknown mint do not hit the
    service again within the TTL.
    """

    def __init__(
        self,
        config: Optional[MarketDataConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config or get_app_config().market_data
        self._session = session or requests.Session()
        self._base_url = str(self._config.base_url).rstrip("/")
        self._currency = self._config.currency
        self._timeout = self._config.http_timeout
        self._headers = {"Accept": "application/json", "User-Agent": "solana-token-viewer/1.0"}
        if self._config.api_key:
            self._headers["x-cg-demo-api-key"] = self._config.api_key
        self._cache: Optional[TTLCache[str, Optional[MarketSnapshot]]] = None
        if self._config.memoize and self._config.cache_ttl_seconds > 0:
            self._cache = TTLCache(maxsize=4096, ttl=self._config.cache_ttl_seconds)
        self._cache_lock = Lock()
        self._logger = get_logger(__name__)

    def url_for(self, mint_id: str) -> str:
        path = self._config.coin_path_template.format(mint=mint_id)
        return f"{self._base_url}/{path.lstrip('/')}"

    def lookup(self, mint_id: str) -> MarketSnapshot:
        """Return the market snapshot for ``mint_id`` or raise :class:`MarketDataError`."""

        if self._cache is not None:
            with self._cache_lock:
                if mint_id in self._cache:
                    cached = self._cache[mint_id]
                    if cached is None:
                        raise MarketDataError(f"Cached lookup failure for {mint_id}")
                    return cached
        try:
            snapshot = self._fetch(mint_id)
        except MarketDataError:
            self._remember(mint_id, None)
            raise
        self._remember(mint_id, snapshot)
        return snapshot

    def _remember(self, mint_id: str, snapshot: Optional[MarketSnapshot]) -> None:
        if self._cache is None:
            return
        with self._cache_lock:
            self._cache[mint_id] = snapshot

    def _fetch(self, mint_id: str) -> MarketSnapshot:
        url = self.url_for(mint_id)
        METRICS.increment("market_data.requests")
        started = perf_counter()
        try:
            response = self._session.get(url, headers=self._headers, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            METRICS.increment("market_data.failures")
            self._logger.debug("Market data request for %s failed: %s", mint_id, exc)
            raise MarketDataError(f"Request for {mint_id} failed: {exc}") from exc
        except ValueError as exc:
            METRICS.increment("market_data.failures")
            self._logger.debug("Market data invalid JSON for %s: %s", mint_id, exc)
            raise MarketDataError(f"Invalid JSON for {mint_id}") from exc
        finally:
            METRICS.observe("market_data.latency_ms", (perf_counter() - started) * 1000.0)
        try:
            return self.parse_snapshot(payload)
        except MarketDataError as exc:
            METRICS.increment("market_data.failures")
            self._logger.debug("Market data payload for %s rejected: %s", mint_id, exc)
            raise

    def parse_snapshot(self, payload: Any) -> MarketSnapshot:
        """Map a ``/coins/<id>`` body onto a :class:`MarketSnapshot`.

        Each of ``current_price``, ``market_cap`` and ``total_volume`` must be a
        currency map; a missing currency key inside a present map yields 0.0.
        """

        if not isinstance(payload, Mapping):
            raise MarketDataError("Response body is not a JSON object")
        market_data = payload.get("market_data")
        if not isinstance(market_data, Mapping):
            raise MarketDataError("Response has no market_data object")
        values: Dict[str, float] = {}
        for attribute, key in _PRICE_FIELDS.items():
            values[attribute] = self._currency_value(market_data.get(key), key)
        return MarketSnapshot(**values)

    def _currency_value(self, field_map: Any, key: str) -> float:
        if not isinstance(field_map, Mapping):
            raise MarketDataError(f"market_data.{key} is missing or not an object")
        if self._currency not in field_map:
            return 0.0
        raw = field_map[self._currency]
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise MarketDataError(f"market_data.{key}.{self._currency} is not a number")
        value = float(raw)
        if value < 0:
            raise MarketDataError(f"market_data.{key}.{self._currency} is negative")
        return value


__all__ = ["MarketDataClient", "MarketDataError"]
