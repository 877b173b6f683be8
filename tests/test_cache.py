"""
tests.test_cache
~~~~~~~~~~~~~~~~

AsyncTTLCache: fresh / stale tiers, prefix invalidation and loader
coalescing.
"""
from __future__ import annotations

import asyncio

import pytest

from onair.shared.cache import _MISSING, AsyncTTLCache
from onair.shared.errors import StoreUnavailable


class FakeTimer:
    def __init__(self) -> None:
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


@pytest.fixture()
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture()
def cache(timer) -> AsyncTTLCache:
    return AsyncTTLCache(maxsize=4, ttl=2, timer=timer)


class TestTiers:
    def test_fresh_until_ttl(self, cache, timer) -> None:
        cache.set("count:tv", 3)
        timer.value = 1.9
        assert cache.get("count:tv") == 3

        timer.value = 2.5
        assert cache.get("count:tv") is _MISSING
        assert cache.get_stale("count:tv") == 3

    def test_none_is_a_value(self, cache) -> None:
        cache.set("k", None)
        assert cache.get("k") is None

    def test_invalidate_keeps_stale(self, cache) -> None:
        cache.set("count:tv", 3)
        cache.invalidate("count:tv")

        assert cache.get("count:tv") is _MISSING
        assert cache.get_stale("count:tv") == 3

    def test_invalidate_prefix(self, cache) -> None:
        cache.set("comments:tv:recent:50", [])
        cache.set("comments:tv:recent:20", [])
        cache.set("comments:radio:recent:50", [])

        assert cache.invalidate_prefix("comments:tv:") == 2
        assert cache.size == 1

    def test_stale_store_bounded(self, cache) -> None:
        for i in range(6):
            cache.set(f"k{i}", i)

        assert cache.stale_size == 4
        assert cache.get_stale("k0") is _MISSING
        assert cache.get_stale("k5") == 5

    def test_clear_keeps_stale(self, cache) -> None:
        cache.set("a", 1)
        cache.clear()

        assert cache.size == 0
        assert cache.stale_size == 1


class TestLoad:
    @pytest.mark.asyncio
    async def test_loads_once_while_fresh(self, cache) -> None:
        calls = 0

        async def loader() -> int:
            nonlocal calls
            calls += 1
            return 42

        assert await cache.load("answer", loader) == 42
        assert await cache.load("answer", loader) == 42
        assert calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_loader(self, cache) -> None:
        calls = 0

        async def loader() -> int:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return calls

        results = await asyncio.gather(*(cache.load("k", loader) for _ in range(10)))

        assert results == [1] * 10
        assert calls == 1

    @pytest.mark.asyncio
    async def test_store_failure_falls_back_to_stale(self, cache, timer) -> None:
        cache.set("count:tv", 9)
        timer.value = 10

        async def failing() -> int:
            raise StoreUnavailable("presence.count")

        assert await cache.load("count:tv", failing) == 9

    @pytest.mark.asyncio
    async def test_store_failure_without_stale_raises(self, cache) -> None:
        async def failing() -> int:
            raise StoreUnavailable("presence.count")

        with pytest.raises(StoreUnavailable):
            await cache.load("count:radio", failing)

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, cache) -> None:
        cache.set("k", 1)
        cache.invalidate("k")

        async def broken() -> int:
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await cache.load("k", broken)

    @pytest.mark.asyncio
    async def test_lock_pruning_spares_running_loader(self) -> None:
        cache = AsyncTTLCache(maxsize=1, ttl=60)
        release = asyncio.Event()
        calls = 0

        async def slow() -> int:
            nonlocal calls
            calls += 1
            await release.wait()
            return calls

        async def quick() -> int:
            return 0

        first = asyncio.create_task(cache.load("slow", slow))
        await asyncio.sleep(0)
        # Enough other keys to push the lock table past its bound
        for key in ("a", "b", "c"):
            await cache.load(key, quick)
        second = asyncio.create_task(cache.load("slow", slow))
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(first, second) == [1, 1]
        assert calls == 1
