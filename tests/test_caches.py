"""Tests for the TTL cache and the cache registry."""

import time

import pytest
from nixops_mcp.caches import CacheRegistry, TtlCache, cache_key, cached
from nixops_mcp.config import CACHE_TTLS


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.mark.unit
class TestTtlCache:
    def test_get_within_ttl(self, clock):
        cache = TtlCache(60, clock=clock)
        cache.insert("k", "v")
        clock.advance(59)
        assert cache.get("k") == "v"

    def test_expired_entry_is_absent_and_removed(self, clock):
        cache = TtlCache(60, clock=clock)
        cache.insert("k", "v")
        clock.advance(120)
        assert cache.get("k") is None
        assert len(cache) == 0
        assert cache.is_empty()

    def test_missing_key(self, clock):
        assert TtlCache(60, clock=clock).get("absent") is None

    def test_evicts_oldest_insertion_at_capacity(self, clock):
        cache = TtlCache(60, capacity=3, clock=clock)
        for key in ("k1", "k2", "k3", "k4"):
            cache.insert(key, key.upper())
            clock.advance(1)
        assert cache.get("k1") is None
        assert [cache.get(k) for k in ("k2", "k3", "k4")] == ["K2", "K3", "K4"]
        assert len(cache) == 3

    def test_overwrite_at_capacity_keeps_other_keys(self, clock):
        cache = TtlCache(60, capacity=3, clock=clock)
        for key in ("k1", "k2", "k3"):
            cache.insert(key, "old")
        cache.insert("k2", "new")
        assert cache.get("k2") == "new"
        assert cache.get("k1") == "old"
        assert cache.get("k3") == "old"

    def test_overwrite_resets_expiry(self, clock):
        cache = TtlCache(60, clock=clock)
        cache.insert("k", "v1")
        clock.advance(50)
        cache.insert("k", "v2")
        clock.advance(50)
        assert cache.get("k") == "v2"

    def test_zero_capacity_is_unbounded(self, clock):
        cache = TtlCache(60, capacity=0, clock=clock)
        for i in range(50):
            cache.insert(str(i), i)
        assert len(cache) == 50

    def test_cleanup(self, clock):
        cache = TtlCache(60, clock=clock)
        cache.insert("old", 1)
        clock.advance(30)
        cache.insert("new", 2)
        clock.advance(40)
        assert cache.cleanup() == 1
        assert len(cache) == 1
        assert cache.get("new") == 2

    def test_clear(self, clock):
        cache = TtlCache(60, clock=clock)
        cache.insert("a", 1)
        cache.insert("b", 2)
        cache.clear()
        assert cache.is_empty()

    def test_stuck_lock_bypasses_cache(self, clock, monkeypatch):
        cache = TtlCache(60, clock=clock)
        cache.insert("k", "v")
        with monkeypatch.context() as m:
            m.setattr(cache, "_acquire", lambda: False)
            assert cache.get("k") is None
            cache.insert("other", "x")
        assert cache.get("other") is None
        assert cache.get("k") == "v"

    @pytest.mark.flaky(reruns=2)
    def test_real_clock_expiry(self):
        cache = TtlCache(0.05)
        cache.insert("k", "v")
        assert cache.get("k") == "v"
        time.sleep(0.1)
        assert cache.get("k") is None


@pytest.mark.unit
class TestCacheRegistry:
    def test_named_caches_use_configured_ttls(self):
        caches = CacheRegistry()
        for name in CacheRegistry.NAMES:
            assert caches.get(name).ttl == CACHE_TTLS[name]
        assert caches.search.ttl == 600
        assert caches.prefetch.ttl == 86400

    def test_unknown_cache(self):
        with pytest.raises(KeyError):
            CacheRegistry().get("nope")

    def test_clear_all(self):
        caches = CacheRegistry()
        caches.search.insert("a", "1")
        caches.eval.insert("b", "2")
        caches.clear_all()
        assert all(caches.get(name).is_empty() for name in CacheRegistry.NAMES)

    def test_caches_are_independent(self):
        caches = CacheRegistry()
        caches.search.insert("key", "search")
        assert caches.locate.get("key") is None


@pytest.mark.unit
class TestCachedHelper:
    def test_cache_key(self):
        assert cache_key("ripgrep", 3) == "ripgrep:3"
        assert cache_key("nixpkgs#hello", True) == "nixpkgs#hello:True"

    @pytest.mark.asyncio
    async def test_produces_once(self, clock):
        cache = TtlCache(60, clock=clock)
        calls = []

        async def produce():
            calls.append(1)
            return "result"

        assert await cached(cache, ("a", 1), produce) == "result"
        assert await cached(cache, ("a", 1), produce) == "result"
        assert len(calls) == 1
        assert cache.get("a:1") == "result"

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, clock):
        cache = TtlCache(60, clock=clock)

        async def produce():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cached(cache, ("a",), produce)
        assert cache.is_empty()
