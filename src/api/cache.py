"""
In-memory caching layer for Keno API responses.

One process-wide store maps a key to ``(value, stored_at)``. The store does
not know TTLs: callers pass the TTL that fits the data when they read, so the
category tree and the product base can live side by side with different
freshness windows. Expired entries are not evicted, they just stop counting as
hits; the key space is small and the process is short lived.
"""
import asyncio
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheStats:
    """Cache performance statistics."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    loads: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


@dataclass(frozen=True)
class CacheEntry:
    """Cache entry. Replaced wholesale on refresh, never mutated."""
    key: str
    value: Any
    stored_at: datetime

    def age_seconds(self, now: datetime) -> float:
        return (now - self.stored_at).total_seconds()


class CacheStore:
    """
    Keyed store with caller-supplied TTL policy.

    ``put`` is the only mutator and is last-writer-wins. With ``single_flight``
    enabled, concurrent misses on one key going through ``get_or_load`` wait on
    a per-key lock and re-check the store, so only one of them calls upstream.
    """

    def __init__(self, clock: Optional[Clock] = None, single_flight: bool = True):
        self.clock = clock or utc_now
        self.single_flight = single_flight
        self.stats = CacheStats()
        self._entries: Dict[str, CacheEntry] = {}
        self._key_locks: Dict[str, asyncio.Lock] = {}

    @staticmethod
    def make_key(key: str) -> str:
        """Create normalized cache key."""
        if not key:
            raise ValueError("Cache key cannot be empty")
        # Hash long keys so many category IDs don't produce huge keys
        if len(key) > 250:
            key_hash = hashlib.md5(key.encode()).hexdigest()
            return f"hash:{key_hash}"
        return key

    def get(self, key: str) -> Optional[CacheEntry]:
        """Get the entry for ``key``, fresh or not."""
        return self._entries.get(self.make_key(key))

    def put(self, key: str, value: Any) -> CacheEntry:
        """Store ``value`` under ``key``, replacing any previous entry."""
        cache_key = self.make_key(key)
        entry = CacheEntry(key=cache_key, value=value, stored_at=self.clock())
        self._entries[cache_key] = entry
        self.stats.sets += 1
        return entry

    def is_fresh(self, entry: CacheEntry, ttl: float) -> bool:
        """An entry is fresh while ``now - stored_at < ttl``."""
        return self.clock() - entry.stored_at < timedelta(seconds=ttl)

    def get_fresh(self, key: str, ttl: float) -> Optional[Any]:
        """Return the cached value if it is still fresh, otherwise None."""
        entry = self.get(key)
        if entry is not None and self.is_fresh(entry, ttl):
            self.stats.hits += 1
            return entry.value
        self.stats.misses += 1
        return None

    async def get_or_load(
        self,
        key: str,
        ttl: float,
        loader: Callable[[], Awaitable[Any]],
    ) -> Tuple[Any, bool]:
        """
        Read-through lookup.

        Returns ``(value, hit)``. On a miss ``loader`` is awaited and its
        result stored. If ``loader`` raises, the exception propagates and the
        previous entry for ``key`` (if any) is left as it was.
        """
        # Each lookup counts once: as a hit, or as a miss right before it loads
        entry = self.get(key)
        if entry is not None and self.is_fresh(entry, ttl):
            logger.debug(f"Cache hit for {key}")
            self.stats.hits += 1
            return entry.value, True

        if not self.single_flight:
            self.stats.misses += 1
            return await self._load(key, loader), False

        lock = self._key_locks.setdefault(self.make_key(key), asyncio.Lock())
        async with lock:
            # Another request may have refreshed the key while we waited
            entry = self.get(key)
            if entry is not None and self.is_fresh(entry, ttl):
                logger.debug(f"Cache filled by concurrent load for {key}")
                self.stats.hits += 1
                return entry.value, True
            self.stats.misses += 1
            return await self._load(key, loader), False

    async def _load(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        logger.debug(f"Cache miss for {key}, loading")
        self.stats.loads += 1
        try:
            value = await loader()
        except Exception:
            self.stats.errors += 1
            raise
        self.put(key, value)
        return value

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def size(self) -> int:
        """Get current cache size."""
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        return {
            "hits": self.stats.hits,
            "misses": self.stats.misses,
            "sets": self.stats.sets,
            "loads": self.stats.loads,
            "errors": self.stats.errors,
            "hit_rate": self.stats.hit_rate,
            "size": self.size(),
            "single_flight": self.single_flight,
        }


# TTL constants for different data types
class CacheTTL:
    """Cache TTL defaults based on data volatility."""

    CATEGORIES = 3600  # 1 hour, categories are near-static
    PRODUCTS = 600  # 10 minutes, prices and stock move


# Global cache store instance
cache_store: Optional[CacheStore] = None


def get_cache_store() -> Optional[CacheStore]:
    """Get the global cache store instance."""
    return cache_store


def init_cache_store(single_flight: bool = True, clock: Optional[Clock] = None) -> CacheStore:
    """Initialize the global cache store."""
    global cache_store
    cache_store = CacheStore(clock=clock, single_flight=single_flight)
    return cache_store
