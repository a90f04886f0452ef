"""In-memory caching service with TTL support."""

import logging
import threading
from typing import Any, Dict, Optional
from cachetools import TTLCache

from .. import config

logger = logging.getLogger(__name__)


class CacheService:
    """Thread-safe in-memory cache for derived scoreboard data."""

    def __init__(self, ttl: Optional[int] = None) -> None:
        """
        Initialize cache stores.

        Args:
            ttl: Seconds an entry stays valid, defaults to
                 STANDINGS_CACHE_TTL_SECONDS
        """
        ttl = config.STANDINGS_CACHE_TTL_SECONDS if ttl is None else ttl

        # Separate caches for different data types
        self._standings_cache: TTLCache = TTLCache(maxsize=8, ttl=ttl)
        self._results_cache: TTLCache = TTLCache(maxsize=1000, ttl=ttl)

        # Lock for thread safety
        self._lock = threading.RLock()

    def _get_cache(self, cache_type: str) -> TTLCache:
        """Get the appropriate cache based on type."""
        caches = {
            "standings": self._standings_cache,
            "results": self._results_cache,
        }
        if cache_type not in caches:
            raise KeyError(f"Unknown cache type: {cache_type}")
        return caches[cache_type]

    def get(self, key: str, cache_type: str = "standings") -> Optional[Any]:
        """Get a value from the cache.

        Args:
            key: The cache key
            cache_type: Type of cache (standings, results)

        Returns:
            Cached value or None if not found/expired
        """
        with self._lock:
            return self._get_cache(cache_type).get(key)

    def set(self, key: str, value: Any, cache_type: str = "standings") -> None:
        """Set a value in the cache."""
        with self._lock:
            self._get_cache(cache_type)[key] = value

    def clear(self, cache_type: Optional[str] = None) -> None:
        """Clear cache(s).

        Args:
            cache_type: Type of cache to clear, or None to clear all
        """
        with self._lock:
            if cache_type:
                self._get_cache(cache_type).clear()
            else:
                self._standings_cache.clear()
                self._results_cache.clear()

    def expire(self) -> None:
        """Drop expired entries from every cache."""
        with self._lock:
            self._standings_cache.expire()
            self._results_cache.expire()

    def invalidate(self, topic: str, info: Dict[str, Any]) -> None:
        """Notification callback: any ledger or roster write clears everything."""
        self.clear()
        logger.debug("Cache cleared after %s write %s", topic, info)

    def stats(self) -> Dict[str, Dict[str, int]]:
        """Get cache statistics.

        Returns:
            Dictionary with cache stats for each cache type
        """
        with self._lock:
            return {
                "standings": {
                    "size": len(self._standings_cache),
                    "maxsize": int(self._standings_cache.maxsize),
                },
                "results": {
                    "size": len(self._results_cache),
                    "maxsize": int(self._results_cache.maxsize),
                },
            }
