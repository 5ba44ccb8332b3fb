import asyncio
import time
from typing import Any, Callable, Optional

from storefront.utils.logging_config import get_logger

logger = get_logger(__name__)


class TTLCache:
    """Async-safe key/value cache where every entry carries its own expiry"""

    def __init__(
        self,
        max_size: int = 100,
        ttl: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the cache

        Args:
            max_size: Maximum number of entries kept before LRU eviction
            ttl: Default time to live for entries in seconds
            clock: Time source, swapped out in tests
        """
        self.max_size = max_size
        self.ttl = ttl
        self.clock = clock
        self.cache: dict[str, tuple[Any, float]] = {}
        self.access_times: dict[str, float] = {}
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    async def get(self, key: str) -> Optional[Any]:  # noqa: ANN401
        """Return the cached value, or None when missing or expired"""
        entry = self.cache.get(key)
        if entry is None:
            self.misses += 1
            return None

        value, expiry = entry
        now = self.clock()

        if now >= expiry:
            async with self._lock:
                # Another writer may have refreshed it while we waited
                if key in self.cache and now >= self.cache[key][1]:
                    self._drop(key)
            self.misses += 1
            return None

        self.access_times[key] = now
        self.hits += 1
        return value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:  # noqa: ANN401
        """Store a value for `ttl` seconds (the cache default when omitted)"""
        now = self.clock()
        expiry = now + (self.ttl if ttl is None else ttl)

        async with self._lock:
            if len(self.cache) >= self.max_size and key not in self.cache:
                self._evict_lru()

            self.cache[key] = (value, expiry)
            self.access_times[key] = now

        logger.debug(f"Cached {key} for {expiry - now:.0f}s")

    async def forget(self, key: str) -> None:
        async with self._lock:
            self._drop(key)

    async def clear(self) -> None:
        """Clear all cache entries"""
        async with self._lock:
            self.cache.clear()
            self.access_times.clear()

    def _drop(self, key: str) -> None:
        self.cache.pop(key, None)
        self.access_times.pop(key, None)

    def _evict_lru(self) -> None:
        if not self.access_times:
            return

        oldest_key = min(self.access_times.items(), key=lambda x: x[1])[0]
        self._drop(oldest_key)
        logger.debug(f"Evicted {oldest_key} from cache")

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics"""
        return {
            "size": len(self.cache),
            "max_size": self.max_size,
            "ttl": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
            "utilization": len(self.cache) / self.max_size if self.max_size > 0 else 0,
        }
