"""Tests for the TTL cache stores."""

from __future__ import annotations

import pytest
from conftest import make_record

from animatch.infrastructure.cache import AnimeCache, CacheEntry, TTLStore
from animatch.models import SearchOptions


class TestCacheEntry:
    def test_not_expired_within_ttl(self):
        entry = CacheEntry(value=1, inserted_at=100.0, ttl=10.0)
        assert entry.is_expired(110.0) is False

    def test_expired_after_ttl(self):
        entry = CacheEntry(value=1, inserted_at=100.0, ttl=10.0)
        assert entry.is_expired(110.01) is True

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_non_positive_ttl_always_expired(self, ttl):
        assert CacheEntry(value=1, inserted_at=100.0, ttl=ttl).is_expired(100.0) is True


class TestTTLStore:
    def test_get_miss(self, clock):
        store = TTLStore[int]("t", ttl=10, clock=clock)
        assert store.get("missing") is None
        assert store.stats.misses == 1

    def test_set_and_get(self, clock):
        store = TTLStore[int]("t", ttl=10, clock=clock)
        store.set("a", 1)
        assert store.get("a") == 1
        assert store.stats.hits == 1

    def test_expired_entry_deleted_on_get(self, clock):
        store = TTLStore[int]("t", ttl=10, clock=clock)
        store.set("a", 1)
        clock.advance(11)
        assert "a" in store
        assert store.get("a") is None
        assert "a" not in store
        assert store.stats.expirations == 1

    def test_zero_ttl_misses_immediately(self, clock):
        store = TTLStore[int]("t", ttl=10, clock=clock)
        store.set("a", 1, ttl=0)
        assert store.get("a") is None

    def test_oldest_inserted_evicted(self, clock):
        store = TTLStore[str]("t", ttl=60, max_size=2, clock=clock)
        store.set("k1", "v1")
        store.set("k2", "v2")
        store.set("k3", "v3")
        assert store.get("k1") is None
        assert store.get("k2") == "v2"
        assert store.get("k3") == "v3"
        assert store.stats.evictions == 1

    def test_reads_do_not_refresh_eviction_order(self, clock):
        store = TTLStore[str]("t", ttl=60, max_size=2, clock=clock)
        store.set("k1", "v1")
        store.set("k2", "v2")
        assert store.get("k1") == "v1"
        store.set("k3", "v3")
        assert store.get("k1") is None
        assert store.get("k2") == "v2"

    def test_set_purges_expired_entries(self, clock):
        store = TTLStore[str]("t", ttl=10, max_size=2, clock=clock)
        store.set("old", "x")
        clock.advance(5)
        store.set("fresh", "y")
        clock.advance(6)  # "old" is now expired, "fresh" is not
        store.set("new", "z")
        assert len(store) == 2
        assert store.get("fresh") == "y"
        assert store.stats.evictions == 0

    def test_cleanup_expired(self, clock):
        store = TTLStore[int]("t", ttl=10, clock=clock)
        store.set("a", 1)
        store.set("b", 2, ttl=100)
        clock.advance(20)
        assert store.cleanup_expired() == 1
        assert len(store) == 1

    def test_invalidate(self, clock):
        store = TTLStore[int]("t", ttl=10, clock=clock)
        store.set("a", 1)
        assert store.invalidate("a") is True
        assert store.invalidate("a") is False

    def test_clear_is_not_counted_as_eviction(self, clock):
        store = TTLStore[int]("t", ttl=10, clock=clock)
        store.set("a", 1)
        store.set("b", 2)
        assert store.clear() == 2
        assert len(store) == 0
        assert store.stats.evictions == 0

    def test_zero_capacity_stores_nothing(self, clock):
        store = TTLStore[int]("t", ttl=10, max_size=0, clock=clock)
        store.set("a", 1)
        assert store.get("a") is None
        assert len(store) == 0
        assert store.stats.evictions == 0


class TestAnimeCache:
    def test_search_key_normalizes_query(self):
        options = SearchOptions(genres=["Action"])
        assert AnimeCache.search_key("  Bebop ", options) == AnimeCache.search_key("bebop", options)

    def test_search_key_depends_on_options(self):
        assert AnimeCache.search_key("bebop", SearchOptions(page=1)) != AnimeCache.search_key(
            "bebop", SearchOptions(page=2)
        )

    def test_search_results_round_trip(self, clock):
        cache = AnimeCache(clock=clock)
        records = [make_record()]
        cache.set_search_results("Bebop", SearchOptions(), records)
        assert cache.get_search_results("bebop", SearchOptions()) == records

    def test_stores_have_separate_ttls(self, clock):
        cache = AnimeCache(search_ttl=10, details_ttl=100, recommendations_ttl=50, clock=clock)
        record = make_record()
        cache.set_search_results("q", None, [record])
        cache.set_anime_details(record.id, record)
        cache.set_recommendations(record.id, [record])

        clock.advance(30)
        assert cache.get_search_results("q") is None
        assert cache.get_anime_details(record.id) is record
        assert cache.get_recommendations(record.id) == [record]

        clock.advance(30)
        assert cache.get_recommendations(record.id) is None
        assert cache.get_anime_details(record.id) is record

    def test_stats_and_clear(self, clock):
        cache = AnimeCache(clock=clock)
        record = make_record()
        cache.set_anime_details(record.id, record)
        cache.get_anime_details(record.id)
        cache.get_anime_details("anilist-404")

        stats = cache.get_stats()
        assert stats["details_entries"] == 1
        assert stats["total_size"] == 1
        assert stats["stores"]["details"]["hits"] == 1
        assert stats["stores"]["details"]["misses"] == 1
        assert stats["stores"]["details"]["hit_rate"] == 0.5

        cache.clear()
        assert cache.get_stats()["total_size"] == 0

    def test_zero_capacity_cache_is_a_pass_through(self, clock):
        cache = AnimeCache(max_size=0, clock=clock)
        record = make_record()

        cache.set_anime_details(record.id, record)
        cache.set_search_results("bebop", None, [record])

        assert cache.get_anime_details(record.id) is None
        assert cache.get_search_results("bebop") is None
        assert cache.get_stats()["total_size"] == 0
