"""
Tests for the bridge TTL cache
"""

import pytest

from app.ai_bridge.cache import CacheBackend, CacheEntry, InMemoryTTLCache


class FakeClock:
    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class TestCacheEntry:

    def test_valid_until_ttl_elapses(self):
        entry = CacheEntry(data="x", timestamp=1000, ttl=500)
        assert entry.is_valid(1500)
        assert not entry.is_valid(1501)


class TestInMemoryTTLCache:

    def test_get_set(self):
        cache = InMemoryTTLCache(default_ttl_ms=1000, max_entries=10, clock=FakeClock())
        cache.set("providers", ["shopify"])
        assert cache.get("providers") == ["shopify"]
        assert cache.get("missing") is None

    def test_expired_entries_are_evicted_on_read(self):
        clock = FakeClock()
        cache = InMemoryTTLCache(default_ttl_ms=1000, max_entries=10, clock=clock)
        cache.set("orders:u1", [1, 2])

        clock.advance(1000)
        assert cache.get("orders:u1") == [1, 2]

        clock.advance(1)
        assert cache.get("orders:u1") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self):
        clock = FakeClock()
        cache = InMemoryTTLCache(default_ttl_ms=1000, max_entries=10, clock=clock)
        cache.set("short", "a", ttl_ms=10)
        cache.set("long", "b")

        clock.advance(11)
        assert cache.get("short") is None
        assert cache.get("long") == "b"

    def test_empty_list_is_a_hit(self):
        cache = InMemoryTTLCache(default_ttl_ms=1000, max_entries=10, clock=FakeClock())
        cache.set("orders:u1", [])
        assert cache.get("orders:u1") == []

    def test_callers_cannot_mutate_cached_lists(self):
        cache = InMemoryTTLCache(default_ttl_ms=1000, max_entries=10, clock=FakeClock())
        records = ["a"]
        cache.set("k", records)

        records.append("b")
        cached = cache.get("k")
        cached.append("c")

        assert cache.get("k") == ["a"]

    def test_sweep_runs_when_over_capacity(self):
        clock = FakeClock()
        cache = InMemoryTTLCache(default_ttl_ms=10, max_entries=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        clock.advance(20)
        cache.set("c", 3)

        assert len(cache) == 1
        assert cache.stats()["keys"] == ["c"]

    def test_sweep_keeps_live_entries(self):
        clock = FakeClock()
        cache = InMemoryTTLCache(default_ttl_ms=10, max_entries=100, clock=clock)
        cache.set("old", 1)
        clock.advance(20)
        cache.set("new", 2)

        assert cache.sweep() == 1
        assert cache.get("new") == 2

    def test_clear_and_stats(self):
        cache = InMemoryTTLCache(default_ttl_ms=300000, max_entries=100, clock=FakeClock())
        cache.set("integrations:u1", ["shopify"])
        cache.set("orders:u1:recent:all:10", [])

        stats = cache.stats()
        assert stats["size"] == 2
        assert set(stats["keys"]) == {"integrations:u1", "orders:u1:recent:all:10"}
        assert stats["max_entries"] == 100
        assert stats["ttl_seconds"] == 300

        cache.clear()
        assert cache.stats()["size"] == 0


class TestCacheBackend:

    def test_backends_must_implement_sweep(self):
        class NoSweepCache(CacheBackend):
            def get(self, key):
                return None

            def set(self, key, data, ttl_ms=None):
                pass

            def clear(self):
                pass

            def stats(self):
                return {}

        with pytest.raises(TypeError):
            NoSweepCache()

        assert isinstance(InMemoryTTLCache(default_ttl_ms=1000, max_entries=10), CacheBackend)
