"""Expiring cache in front of the environmental data fetchers.

Entries are stored as JSON ``{"data", "timestamp", "ttl"}`` under
``<namespace>-<version>-<key>``, so a format change only needs a version bump.
Caching is best-effort: store failures are logged and treated as misses.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Optional

from pydantic import ValidationError

from forest_impact.config import settings
from forest_impact.errors import CacheError, QuotaExceededError
from forest_impact.models.schemas import CacheEntry, CacheStats
from forest_impact.models.store import InMemoryStore, JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 60 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


class EnvCache:
    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = "forest-sim-cache",
        version: str = "v1",
        clock: Callable[[], int] = _now_ms,
    ):
        self.store = store
        self.prefix = f"{namespace}-{version}"
        self.clock = clock

    def _key(self, key: str) -> str:
        return f"{self.prefix}-{key}"

    def _own_keys(self) -> list[str]:
        return [k for k in self.store.keys() if k.startswith(self.prefix)]

    def _is_expired(self, entry: CacheEntry, now: int) -> bool:
        return now - entry.timestamp > entry.ttl

    def get(self, key: str) -> Optional[Any]:
        """Cached data for ``key``, or None when absent or expired."""
        cache_key = self._key(key)
        try:
            raw = self.store.get_item(cache_key)
            if raw is None:
                return None
            entry = CacheEntry.model_validate_json(raw)
            if self._is_expired(entry, self.clock()):
                self.store.remove_item(cache_key)
                logger.debug("Cache expired for key: %s", key)
                return None
        except (CacheError, ValidationError) as e:
            logger.warning("Error reading from cache: %s", e)
            return None

        logger.debug("Cache hit for key: %s", key)
        return entry.data

    def set(self, key: str, data: Any, ttl: int = DEFAULT_TTL_MS) -> None:
        """Store ``data`` for ``ttl`` ms.

        When the store is full, expired entries are evicted and the write is
        retried once; if that fails too the write is dropped.
        """
        cache_key = self._key(key)
        try:
            self.store.set_item(cache_key, self._serialize(data, ttl))
            logger.debug("Cached data for key: %s (TTL: %.1f minutes)", key, ttl / 1000 / 60)
            return
        except QuotaExceededError as e:
            logger.warning("Cache quota exceeded writing %s: %s", key, e)
        except (CacheError, TypeError, ValueError) as e:
            logger.warning("Error writing to cache: %s", e)
            return

        self.clear_expired()
        try:
            self.store.set_item(cache_key, self._serialize(data, ttl))
            logger.info("Cached %s after clearing expired entries", key)
        except CacheError as e:
            logger.warning("Failed to cache %s after clearing expired entries: %s", key, e)

    def _serialize(self, data: Any, ttl: int) -> str:
        return json.dumps({"data": data, "timestamp": self.clock(), "ttl": ttl})

    def clear_expired(self) -> int:
        """Remove expired and unreadable entries; returns how many were removed."""
        now = self.clock()
        removed = 0
        try:
            for cache_key in self._own_keys():
                raw = self.store.get_item(cache_key)
                if raw is None:
                    continue
                try:
                    expired = self._is_expired(CacheEntry.model_validate_json(raw), now)
                except ValidationError:
                    expired = True
                if expired:
                    self.store.remove_item(cache_key)
                    removed += 1
        except CacheError as e:
            logger.warning("Error clearing expired cache: %s", e)

        if removed:
            logger.info("Cleared %d expired cache entries", removed)
        return removed

    def clear_all(self) -> int:
        removed = 0
        try:
            for cache_key in self._own_keys():
                self.store.remove_item(cache_key)
                removed += 1
        except CacheError as e:
            logger.warning("Error clearing cache: %s", e)
        logger.info("Cleared %d cache entries", removed)
        return removed

    def stats(self) -> CacheStats:
        count = 0
        size = 0
        for cache_key in self._own_keys():
            value = self.store.get_item(cache_key)
            count += 1
            if value:
                size += len(cache_key) + len(value)
        return CacheStats(count=count, size=size)


def generate_location_key(lat: float, lon: float) -> str:
    """Coordinates rounded to 4 decimals (~11 m) so nearby lookups share an entry."""
    return f"{lat:.4f},{lon:.4f}"


def environment_cache_key(lat: float, lon: float) -> str:
    return f"env-{generate_location_key(lat, lon)}"


def create_cache() -> EnvCache:
    """Cache configured from settings: file-backed when ``cache_file`` is set."""
    store = JsonFileStore(settings.cache_file) if settings.cache_file else InMemoryStore()
    cache = EnvCache(store, namespace=settings.cache_namespace, version=settings.cache_version)
    cache.clear_expired()
    return cache
