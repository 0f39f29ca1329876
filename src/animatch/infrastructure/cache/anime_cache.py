"""
Anime Cache

In-memory, process-lifetime cache for search results, item details and raw
recommendations. Three independent stores, each with its own TTL.

Features:
- Per-entry TTL, checked on every lookup (expired entries are deleted)
- Expired entries purged across the store before every insert
- Oldest-by-insertion eviction via cachetools.FIFOCache (reads never
  refresh an entry's eviction priority)
- Thread-safe, never raises: a miss is a normal return value
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from cachetools import FIFOCache

from animatch.models import AnimeRecord, SearchOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_TTL = 15 * 60.0
DETAILS_TTL = 60 * 60.0
RECOMMENDATIONS_TTL = 30 * 60.0
DEFAULT_MAX_SIZE = 1000


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached value with its insertion time and time-to-live (seconds)."""

    value: T
    inserted_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return self.ttl <= 0 or now - self.inserted_at > self.ttl


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def total_requests(self) -> int:
        """Total cache requests."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate (0-1)."""
        total = self.total_requests
        return self.hits / total if total > 0 else 0.0


class _EvictionCountingFIFOCache(FIFOCache):
    """FIFOCache that reports capacity evictions."""

    def __init__(self, maxsize: int, on_evict: Callable[[Hashable], None]) -> None:
        super().__init__(maxsize=maxsize)
        self._on_evict = on_evict

    def popitem(self) -> tuple[Any, Any]:
        key, value = super().popitem()
        self._on_evict(key)
        return key, value


class TTLStore(Generic[T]):
    """
    One TTL-bounded, size-capped store.

    Example:
        store = TTLStore("details", ttl=3600, max_size=1000)
        store.set("anilist-1", record)
        record = store.get("anilist-1")
    """

    def __init__(
        self,
        name: str,
        ttl: float,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize store.

        Args:
            name: Store name used in logs and stats
            ttl: Time-to-live in seconds for entries inserted without an explicit ttl
            max_size: Maximum number of entries
            clock: Monotonic time source (seconds)
        """
        self.name = name
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._stats = CacheStats()
        self._entries: FIFOCache = _EvictionCountingFIFOCache(max_size, self._record_eviction)
        self._lock = threading.RLock()

    @property
    def stats(self) -> CacheStats:
        """Get store statistics."""
        return self._stats

    def _record_eviction(self, key: Hashable) -> None:
        self._stats.evictions += 1
        logger.debug(f"Cache[{self.name}] evicted oldest entry: {key}")

    def get(self, key: str) -> T | None:
        """
        Get value from the store.

        Returns:
            Cached value, or None if absent or expired (expired entries are deleted)
        """
        with self._lock:
            entry: CacheEntry[T] | None = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats.expirations += 1
                self._stats.misses += 1
                return None
            self._stats.hits += 1
            return entry.value

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        """
        Insert a value, purging expired entries first.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Override the store's TTL for this entry
        """
        if self.max_size <= 0:
            logger.debug(f"Cache {self.name} has no capacity, {key!r} not stored")
            return
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[key] = CacheEntry(
                value=value,
                inserted_at=now,
                ttl=self.ttl if ttl is None else ttl,
            )

    def _purge_expired(self, now: float) -> int:
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for k in expired:
            del self._entries[k]
        self._stats.expirations += len(expired)
        return len(expired)

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._purge_expired(self._clock())

    def invalidate(self, key: str) -> bool:
        """
        Invalidate cache entry.

        Returns:
            True if entry was removed
        """
        with self._lock:
            try:
                del self._entries[key]
                return True
            except KeyError:
                return False

    def clear(self) -> int:
        """
        Clear all entries.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            # MutableMapping.clear() goes through popitem(), which would count as evictions
            self._entries = _EvictionCountingFIFOCache(self.max_size, self._record_eviction)
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        """Check if key is stored (may be expired)."""
        with self._lock:
            return key in self._entries


class AnimeCache:
    """
    Search, details and recommendations stores behind one object.

    Constructed once and injected into the service; there is no module-level
    instance.

    Example:
        cache = AnimeCache()
        cache.set_search_results("bebop", options, records)
        records = cache.get_search_results("Bebop ", options)
    """

    def __init__(
        self,
        search_ttl: float = SEARCH_TTL,
        details_ttl: float = DETAILS_TTL,
        recommendations_ttl: float = RECOMMENDATIONS_TTL,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.search = TTLStore[list[AnimeRecord]]("search", search_ttl, max_size, clock)
        self.details = TTLStore[AnimeRecord]("details", details_ttl, max_size, clock)
        self.recommendations = TTLStore[list[AnimeRecord]]("recommendations", recommendations_ttl, max_size, clock)

    @staticmethod
    def search_key(query: str, options: SearchOptions | None = None) -> str:
        """Normalized query plus serialized options."""
        options_str = json.dumps((options or SearchOptions()).to_dict(), sort_keys=True)
        return f"{query.lower().strip()}-{options_str}"

    # Search cache
    def get_search_results(self, query: str, options: SearchOptions | None = None) -> list[AnimeRecord] | None:
        return self.search.get(self.search_key(query, options))

    def set_search_results(self, query: str, options: SearchOptions | None, records: list[AnimeRecord]) -> None:
        self.search.set(self.search_key(query, options), records)

    # Details cache
    def get_anime_details(self, anime_id: str) -> AnimeRecord | None:
        return self.details.get(anime_id)

    def set_anime_details(self, anime_id: str, record: AnimeRecord) -> None:
        self.details.set(anime_id, record)

    # Recommendations cache
    def get_recommendations(self, anime_id: str) -> list[AnimeRecord] | None:
        return self.recommendations.get(anime_id)

    def set_recommendations(self, anime_id: str, records: list[AnimeRecord]) -> None:
        self.recommendations.set(anime_id, records)

    # Utility methods
    def clear(self) -> None:
        cleared = self.search.clear() + self.details.clear() + self.recommendations.clear()
        logger.info(f"Cache cleared ({cleared} entries)")

    def get_stats(self) -> dict[str, Any]:
        """Entry counts per store plus hit/miss counters."""
        stores = (self.search, self.details, self.recommendations)
        return {
            "search_entries": len(self.search),
            "details_entries": len(self.details),
            "recommendations_entries": len(self.recommendations),
            "total_size": sum(len(s) for s in stores),
            "stores": {
                s.name: {
                    "hits": s.stats.hits,
                    "misses": s.stats.misses,
                    "evictions": s.stats.evictions,
                    "expirations": s.stats.expirations,
                    "hit_rate": round(s.stats.hit_rate, 4),
                }
                for s in stores
            },
        }
