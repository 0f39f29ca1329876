"""
Cache Infrastructure

Provides the in-memory TTL cache layers for catalog results.
"""

from __future__ import annotations

from animatch.infrastructure.cache.anime_cache import (
    AnimeCache,
    CacheEntry,
    CacheStats,
    TTLStore,
)

__all__ = [
    "AnimeCache",
    "CacheEntry",
    "CacheStats",
    "TTLStore",
]
