"""
Unit tests for CacheAside.

Covers read-through behaviour, TTL expiry on an injected clock, tag
invalidation, fail-open store errors and the optional single-flight guard.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from infodot.domain.cache.value_objects import CacheKey, QueryDescriptor, TTL
from infodot.infrastructure.cache.memory_store import InMemoryCacheStore
from infodot.infrastructure.redis.exceptions import CacheConnectionException
from infodot.services.cache import CacheAside


class Counter:
    """Fetch function recording how often it ran."""

    def __init__(self, value):
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.value


@pytest.fixture
def failing_store():
    store = AsyncMock(spec=InMemoryCacheStore)
    error = CacheConnectionException(message="down")
    store.get.side_effect = error
    store.set.side_effect = error
    store.delete.side_effect = error
    store.flush_tags.side_effect = error
    return store


class TestGetOrCompute:
    """Test read-through caching."""

    async def test_miss_then_hit(self, cache):
        """Second read is served from the store without calling fetch."""
        fetch = Counter([{"id": 1}])

        first = await cache.get_or_compute("k", 60, ["questions"], fetch)
        second = await cache.get_or_compute("k", 60, ["questions"], fetch)

        assert first == second == [{"id": 1}]
        assert fetch.calls == 1

    async def test_cached_null_is_a_hit(self, cache):
        fetch = Counter(None)

        await cache.get_or_compute("k", 60, [], fetch)
        assert await cache.get_or_compute("k", 60, [], fetch) is None

        assert fetch.calls == 1

    async def test_ttl_expiry(self, cache, clock):
        """After ttl seconds the entry is recomputed."""
        fetch = Counter("v")

        await cache.get_or_compute("k", TTL(60), [], fetch)
        clock.advance(59)
        await cache.get_or_compute("k", TTL(60), [], fetch)
        assert fetch.calls == 1

        clock.advance(1)
        await cache.get_or_compute("k", TTL(60), [], fetch)
        assert fetch.calls == 2

    async def test_parameter_isolation(self, cache):
        """Different keys never share a value."""
        ten = await cache.get_or_compute(
            CacheKey.popular_questions(10), 300, [], Counter(list(range(10)))
        )
        five = await cache.get_or_compute(
            CacheKey.popular_questions(5), 300, [], Counter(list(range(5)))
        )

        assert len(ten) == 10
        assert len(five) == 5

    async def test_fetch_failure_propagates_and_stores_nothing(self, cache, store):
        async def boom():
            raise RuntimeError("database down")

        with pytest.raises(RuntimeError, match="database down"):
            await cache.get_or_compute("k", 60, ["questions"], boom)

        assert await store.get(CacheKey("k")) is None
        assert len(store) == 0

    async def test_values_round_trip_as_json(self, cache, store):
        """Non-JSON types are stringified on the way in."""
        when = datetime(2024, 1, 2, tzinfo=timezone.utc)
        fresh = await cache.get_or_compute("k", 60, [], Counter({"at": when}))
        cached = await cache.get_or_compute("k", 60, [], Counter({"at": "other"}))

        assert fresh == {"at": when}
        assert cached == {"at": str(when)}

    async def test_undecodable_value_is_a_miss(self, cache, store):
        await store.set(CacheKey("k"), "not json", TTL(60))
        fetch = Counter(1)

        assert await cache.get_or_compute("k", 60, [], fetch) == 1
        assert fetch.calls == 1
        assert await store.get(CacheKey("k")) == "1"

    async def test_disabled_bypasses_store(self, store):
        cache = CacheAside(store, enabled=False)
        fetch = Counter("v")

        await cache.get_or_compute("k", 60, [], fetch)
        await cache.get_or_compute("k", 60, [], fetch)

        assert fetch.calls == 2
        assert len(store) == 0

    async def test_store_errors_fail_open(self, failing_store):
        """Unreachable store: reads compute from source every time."""
        cache = CacheAside(failing_store)
        fetch = Counter("v")

        assert await cache.get_or_compute("k", 60, [], fetch) == "v"
        assert await cache.get_or_compute("k", 60, [], fetch) == "v"
        assert fetch.calls == 2

    async def test_write_failure_still_returns_value(self, store):
        store.set = AsyncMock(side_effect=CacheConnectionException(message="down"))
        cache = CacheAside(store)

        assert await cache.get_or_compute("k", 60, [], Counter("v")) == "v"

    async def test_remember_uses_descriptor(self, cache, store):
        descriptor = QueryDescriptor(CacheKey("d"), TTL(60), ())

        await cache.remember(descriptor, Counter([1, 2]))

        assert await store.get(CacheKey("d")) == "[1, 2]"


class TestConcurrentMisses:
    """Test stampede behaviour with and without single-flight."""

    @staticmethod
    def slow_fetch(release: asyncio.Event, calls: list):
        async def fetch():
            calls.append(1)
            await release.wait()
            return "v"

        return fetch

    async def test_default_each_caller_computes(self, store):
        cache = CacheAside(store)
        release, calls = asyncio.Event(), []
        fetch = self.slow_fetch(release, calls)

        tasks = [
            asyncio.create_task(cache.get_or_compute("k", 60, [], fetch))
            for _ in range(3)
        ]
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(*tasks) == ["v", "v", "v"]
        assert len(calls) == 3

    async def test_single_flight_shares_one_computation(self, store):
        cache = CacheAside(store, single_flight=True)
        release, calls = asyncio.Event(), []
        fetch = self.slow_fetch(release, calls)

        tasks = [
            asyncio.create_task(cache.get_or_compute("k", 60, [], fetch))
            for _ in range(3)
        ]
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(*tasks) == ["v", "v", "v"]
        assert len(calls) == 1

    async def test_single_flight_propagates_failure_to_waiters(self, store):
        cache = CacheAside(store, single_flight=True)
        release = asyncio.Event()

        async def boom():
            await release.wait()
            raise RuntimeError("nope")

        tasks = [
            asyncio.create_task(cache.get_or_compute("k", 60, [], boom))
            for _ in range(2)
        ]
        await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(result, RuntimeError) for result in results)
        assert len(store) == 0


class TestInvalidation:
    """Test key and tag invalidation."""

    async def test_popular_flush_hits_both_lists(self, cache):
        """popular spans both lists; questions only the first."""
        await cache.get_or_compute("a", 300, ["questions", "popular"], Counter("a"))
        await cache.get_or_compute("b", 300, ["solutions", "popular"], Counter("b"))

        assert await cache.invalidate_tags(["popular"]) == 2

        await cache.get_or_compute("a", 300, ["questions", "popular"], Counter("a"))
        await cache.get_or_compute("b", 300, ["solutions", "popular"], Counter("b"))
        fetch_a, fetch_b = Counter("a2"), Counter("b2")

        assert await cache.invalidate_tags(["questions"]) == 1
        assert await cache.get_or_compute("a", 300, [], fetch_a) == "a2"
        assert await cache.get_or_compute("b", 300, [], fetch_b) == "b"
        assert fetch_a.calls == 1
        assert fetch_b.calls == 0

    async def test_invalidation_is_idempotent(self, cache):
        await cache.get_or_compute("a", 60, ["questions"], Counter(1))

        assert await cache.invalidate_tags(["questions"]) == 1
        assert await cache.invalidate_tags(["questions"]) == 0
        assert await cache.invalidate_key("a") == 0

    async def test_invalidate_key(self, cache):
        await cache.get_or_compute("a", 60, [], Counter(1))

        assert await cache.invalidate_key(CacheKey("a")) == 1

    async def test_no_tags_is_a_noop(self, cache):
        assert await cache.invalidate_tags([]) == 0

    async def test_invalidation_errors_surface(self, failing_store):
        cache = CacheAside(failing_store)

        with pytest.raises(CacheConnectionException):
            await cache.invalidate_tags(["questions"])
        with pytest.raises(CacheConnectionException):
            await cache.invalidate_key("a")


class TestTaggedCache:
    """Test tag-scoped cache views."""

    async def test_remember_and_flush(self, cache, store):
        popular = cache.tagged("questions", "popular")
        fetch = Counter("v")

        await popular.remember("k", 60, fetch)
        await popular.remember("k", 60, fetch)
        assert fetch.calls == 1

        assert await popular.flush() == 1
        assert await store.get(CacheKey("k")) is None

    async def test_health_check_reports_flags(self, cache):
        health = await cache.health_check()

        assert health["status"] == "healthy"
        assert health["enabled"] is True
        assert health["single_flight"] is False
