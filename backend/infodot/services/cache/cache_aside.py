"""
Cache-Aside Accessor

Read-through caching over an injected ``CacheStore``: check the store by
key, on a miss await the fetch function, store its JSON-encoded result with
a TTL and tags, and return it.

Store failures on the read path fail open: the accessor logs, skips the
store and serves the fetch result. Fetch failures propagate unmodified and
nothing is stored.

Concurrent misses on one key each call ``fetch`` unless single-flight is
enabled, in which case callers in this process share one computation.
A recompute that began before an invalidation can still write its result
afterwards; readers are eventually consistent with writes.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Union

from opentelemetry import trace
import structlog

from ...core.config import Settings, get_settings
from ...domain.cache.repository_interfaces import CacheStore
from ...domain.cache.value_objects import (
    CacheKey,
    CacheTag,
    QueryDescriptor,
    TTL,
    normalize_tags,
)
from ...infrastructure.redis.exceptions import CacheStoreException
from ...monitoring.cache_metrics import (
    CACHE_BYPASSES,
    CACHE_HITS,
    CACHE_INVALIDATED,
    CACHE_MISSES,
)

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

Fetch = Callable[[], Awaitable[Any]]
KeyLike = Union[CacheKey, str]
TTLLike = Union[TTL, int]
TagLike = Union[CacheTag, str]


def _as_key(key: KeyLike) -> CacheKey:
    return key if isinstance(key, CacheKey) else CacheKey(key)


def _as_ttl(ttl: TTLLike) -> TTL:
    return ttl if isinstance(ttl, TTL) else TTL(int(ttl))


class CacheAside:
    """Cache-aside accessor with tag-scoped invalidation."""

    def __init__(
        self,
        store: CacheStore,
        enabled: bool = True,
        single_flight: bool = False,
    ):
        self.store = store
        self.enabled = enabled
        self.single_flight = single_flight
        self._inflight: Dict[str, asyncio.Future] = {}

    @classmethod
    def from_settings(
        cls, store: CacheStore, settings: Optional[Settings] = None
    ) -> "CacheAside":
        settings = settings or get_settings()
        return cls(
            store,
            enabled=settings.CACHE_ENABLED,
            single_flight=settings.CACHE_SINGLE_FLIGHT,
        )

    async def get_or_compute(
        self,
        key: KeyLike,
        ttl: TTLLike,
        tags: Iterable[TagLike],
        fetch: Fetch,
    ) -> Any:
        """
        Return the cached value for ``key``, computing and storing it on a miss.

        Args:
            key: Cache key
            ttl: Lifetime of a newly stored value
            tags: Invalidation tags attached to a newly stored value
            fetch: Zero-argument coroutine function producing the value

        Returns:
            Cached or freshly fetched value
        """
        key = _as_key(key)
        ttl = _as_ttl(ttl)
        tags = normalize_tags(tags)

        with tracer.start_as_current_span("cache_aside.get_or_compute") as span:
            span.set_attribute("cache.key", key.value)

            if not self.enabled:
                span.set_attribute("cache_hit", False)
                CACHE_BYPASSES.labels(reason="disabled").inc()
                return await fetch()

            try:
                raw = await self.store.get(key)
            except CacheStoreException as e:
                logger.warning(
                    "Cache read failed, serving from source",
                    key=key.value,
                    error=str(e),
                    error_code=e.error_code,
                )
                span.set_attribute("cache_hit", False)
                CACHE_BYPASSES.labels(reason="store_error").inc()
                return await fetch()

            if raw is not None:
                try:
                    value = json.loads(raw)
                except ValueError as e:
                    logger.warning(
                        "Discarding undecodable cache value",
                        key=key.value,
                        error=str(e),
                    )
                else:
                    span.set_attribute("cache_hit", True)
                    CACHE_HITS.inc()
                    return value

            span.set_attribute("cache_hit", False)
            CACHE_MISSES.inc()

            if self.single_flight:
                return await self._compute_shared(key, ttl, tags, fetch)
            return await self._compute_and_store(key, ttl, tags, fetch)

    async def remember(self, descriptor: QueryDescriptor, fetch: Fetch) -> Any:
        """``get_or_compute`` driven by a named read's descriptor."""
        return await self.get_or_compute(
            descriptor.key, descriptor.ttl, descriptor.tags, fetch
        )

    async def _compute_and_store(
        self, key: CacheKey, ttl: TTL, tags, fetch: Fetch
    ) -> Any:
        value = await fetch()

        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning(
                "Cache value not serializable, returning uncached",
                key=key.value,
                error=str(e),
            )
            return value

        try:
            await self.store.set(key, payload, ttl, tags)
        except CacheStoreException as e:
            logger.warning(
                "Cache write failed, value returned uncached",
                key=key.value,
                error=str(e),
                error_code=e.error_code,
            )
        else:
            logger.debug(
                "Cached value",
                key=key.value,
                ttl=ttl.seconds,
                tags=[tag.value for tag in tags],
            )
        return value

    async def _compute_shared(
        self, key: CacheKey, ttl: TTL, tags, fetch: Fetch
    ) -> Any:
        pending = self._inflight.get(key.value)
        if pending is not None:
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._inflight[key.value] = future
        try:
            value = await self._compute_and_store(key, ttl, tags, fetch)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited future does not warn.
            future.exception()
            raise
        else:
            future.set_result(value)
            return value
        finally:
            self._inflight.pop(key.value, None)

    async def invalidate_key(self, key: KeyLike) -> int:
        """Remove one entry. Returns 1 if it existed, else 0."""
        key = _as_key(key)
        with tracer.start_as_current_span("cache_aside.invalidate_key") as span:
            span.set_attribute("cache.key", key.value)
            removed = int(await self.store.delete(key))
        CACHE_INVALIDATED.labels(kind="key").inc(removed)
        return removed

    async def invalidate_tags(self, tags: Iterable[TagLike]) -> int:
        """Remove every entry carrying any of ``tags``. Returns count removed."""
        tags = normalize_tags(tags)
        if not tags:
            return 0

        with tracer.start_as_current_span("cache_aside.invalidate_tags") as span:
            span.set_attribute("cache.tags", ",".join(tag.value for tag in tags))
            removed = await self.store.flush_tags(tags)
            span.set_attribute("cache.removed", removed)

        CACHE_INVALIDATED.labels(kind="tag").inc(removed)
        logger.info(
            "Invalidated cache tags",
            tags=[tag.value for tag in tags],
            removed=removed,
        )
        return removed

    def tagged(self, *tags: TagLike) -> "TaggedCache":
        """View of this cache scoped to ``tags``."""
        return TaggedCache(self, normalize_tags(tags))

    async def health_check(self) -> Dict[str, Any]:
        status = await self.store.health_check()
        status.update({"enabled": self.enabled, "single_flight": self.single_flight})
        return status


class TaggedCache:
    """Cache view bound to a tag set: ``remember`` stores under it, ``flush`` clears it."""

    def __init__(self, cache: CacheAside, tags):
        self._cache = cache
        self.tags = tags

    async def remember(self, key: KeyLike, ttl: TTLLike, fetch: Fetch) -> Any:
        return await self._cache.get_or_compute(key, ttl, self.tags, fetch)

    async def flush(self) -> int:
        return await self._cache.invalidate_tags(self.tags)
