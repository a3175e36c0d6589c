"""Tests for the read-through cache."""

import threading

from services import cache_service
from services.cache_service import CacheService


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestCacheService:

    def test_get_or_load_calls_loader_once(self):
        cache = CacheService(ttl_seconds=10)
        calls = []

        def loader():
            calls.append(1)
            return ["rent"]

        assert cache.get_or_load((1, cache_service.BILLS), loader) == ["rent"]
        assert cache.get_or_load((1, cache_service.BILLS), loader) == ["rent"]
        assert len(calls) == 1
        assert cache.hits == 1

    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        cache = CacheService(ttl_seconds=10, clock=clock)
        cache.set("k", "v")

        clock.now = 9.9
        assert cache.get("k") == "v"
        clock.now = 10.0
        assert cache.get("k", "gone") == "gone"
        assert len(cache) == 0

    def test_invalidate_many_only_touches_one_owner(self):
        cache = CacheService()
        cache.set((1, cache_service.BILLS), "a")
        cache.set((1, cache_service.SETTINGS), "b")
        cache.set((2, cache_service.BILLS), "c")

        cache.invalidate_many(1, cache_service.BILLS)

        assert cache.get((1, cache_service.BILLS)) is None
        assert cache.get((1, cache_service.SETTINGS)) == "b"
        assert cache.get((2, cache_service.BILLS)) == "c"

    def test_invalidate_owner_drops_every_kind(self):
        cache = CacheService()
        for kind in cache_service.ALL_KINDS:
            cache.set((1, kind), kind)

        cache.invalidate_owner(1)

        assert len(cache) == 0

    def test_load_racing_an_invalidation_is_not_cached(self):
        cache = CacheService()
        key = (1, cache_service.BILLS)
        loading = threading.Event()
        release = threading.Event()

        def slow_loader():
            loading.set()
            release.wait(5)
            return "stale"

        reader = threading.Thread(target=lambda: cache.get_or_load(key, slow_loader))
        reader.start()
        loading.wait(5)
        cache.invalidate(key)  # a write lands while the read is in flight
        release.set()
        reader.join(5)

        assert cache.get_or_load(key, lambda: "fresh") == "fresh"

    def test_clear(self):
        cache = CacheService()
        cache.set("a", 1)
        cache.set("b", 2)

        cache.clear()

        assert len(cache) == 0
