"""
Unit tests for InMemoryCacheStore.

Time is driven by the FakeClock fixture; nothing sleeps.
"""

from infodot.domain.cache.value_objects import CacheKey, CacheTag, TTL


QUESTIONS = CacheTag("questions")
POPULAR = CacheTag("popular")


class TestInMemoryCacheStore:
    """Test in-memory store semantics."""

    async def test_set_and_get(self, store):
        """Stored values are returned before they expire."""
        await store.set(CacheKey("a"), '"v"', TTL(60))

        assert await store.get(CacheKey("a")) == '"v"'
        assert await store.get(CacheKey("missing")) is None

    async def test_lazy_expiry(self, store, clock):
        """An expired entry reads as absent and is dropped from the tag index."""
        await store.set(CacheKey("a"), "1", TTL(60), [QUESTIONS])

        clock.advance(59)
        assert await store.get(CacheKey("a")) == "1"

        clock.advance(1)
        assert await store.get(CacheKey("a")) is None
        assert store.keys_for_tag(QUESTIONS) == set()
        assert len(store) == 0

    async def test_overwrite_replaces_tags(self, store):
        """Rewriting a key drops its previous tag memberships."""
        key = CacheKey("a")
        await store.set(key, "1", TTL(60), [QUESTIONS, POPULAR])
        await store.set(key, "2", TTL(60), [POPULAR])

        assert store.keys_for_tag(QUESTIONS) == set()
        assert store.keys_for_tag(POPULAR) == {"a"}

        assert await store.flush_tags([QUESTIONS]) == 0
        assert await store.get(key) == "2"

    async def test_flush_tags_counts_distinct_entries(self, store):
        """An entry under two flushed tags is counted once."""
        await store.set(CacheKey("a"), "1", TTL(60), [QUESTIONS, POPULAR])
        await store.set(CacheKey("b"), "2", TTL(60), [POPULAR])
        await store.set(CacheKey("c"), "3", TTL(60), [CacheTag("users")])

        removed = await store.flush_tags([QUESTIONS, POPULAR])

        assert removed == 2
        assert await store.get(CacheKey("a")) is None
        assert await store.get(CacheKey("b")) is None
        assert await store.get(CacheKey("c")) == "3"

    async def test_flush_unknown_tag(self, store):
        assert await store.flush_tags([CacheTag("nothing")]) == 0

    async def test_delete(self, store):
        """Delete reports whether the key existed."""
        await store.set(CacheKey("a"), "1", TTL(60), [QUESTIONS])

        assert await store.delete(CacheKey("a")) is True
        assert await store.delete(CacheKey("a")) is False
        assert store.keys_for_tag(QUESTIONS) == set()

    async def test_health_check(self, store):
        await store.set(CacheKey("a"), "1", TTL(60), [QUESTIONS])

        health = await store.health_check()

        assert health["status"] == "healthy"
        assert health["backend"] == "memory"
        assert health["entries"] == 1
        assert health["tags"] == 1
