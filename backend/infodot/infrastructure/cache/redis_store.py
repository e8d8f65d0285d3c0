"""
Redis Cache Store

Shared ``CacheStore`` on Redis. Values live under ``{prefix}:{key}`` with a
native expiry; each tag is a Redis set ``{prefix}:tag:{tag}`` holding the
full keys of its entries. Tag flushes run as one Lua script so other
clients never observe a partially flushed tag.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional, Sequence

from redis.asyncio import Redis
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
    RedisError,
)
from opentelemetry import trace
import structlog

from ...core.config import Settings, get_settings
from ...domain.cache.repository_interfaces import CacheStore
from ...domain.cache.value_objects import CacheKey, CacheTag, TTL, normalize_tags
from ..redis.connection_factory import RedisConnectionFactory
from ..redis.exceptions import (
    CacheCommandException,
    CacheConnectionException,
    CacheOperationTimeoutException,
    CacheSerializationException,
)

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


# KEYS: tag set keys. Deletes every member of every tag set, then the sets.
FLUSH_TAGS_SCRIPT = """
local removed = 0
for i, tag_key in ipairs(KEYS) do
    local members = redis.call('SMEMBERS', tag_key)
    for _, member in ipairs(members) do
        removed = removed + redis.call('DEL', member)
    end
    redis.call('DEL', tag_key)
end
return removed
"""


class RedisCacheStore(CacheStore):
    """
    Redis implementation of the cache store.

    Tag sets carry no expiry. A member whose entry already expired is
    harmless; DEL on it is a no-op. Rewriting a key with fewer tags leaves
    it in the old tag sets, so a later flush of an old tag may evict it.
    """

    def __init__(
        self,
        redis: Redis,
        prefix: str = "infodot",
        timeout_seconds: float = 5.0,
        connection_factory: Optional[RedisConnectionFactory] = None,
    ):
        self._redis = redis
        self._prefix = prefix
        self._timeout_seconds = timeout_seconds
        self._connection_factory = connection_factory

    @classmethod
    async def from_settings(
        cls, settings: Optional[Settings] = None
    ) -> "RedisCacheStore":
        """Connect using ``REDIS_URL`` and ``CACHE_PREFIX``."""
        settings = settings or get_settings()
        factory = RedisConnectionFactory(settings)
        client = await factory.get_client()
        return cls(
            client,
            prefix=settings.CACHE_PREFIX,
            timeout_seconds=settings.REDIS_SOCKET_TIMEOUT,
            connection_factory=factory,
        )

    def _key(self, key: CacheKey) -> str:
        return f"{self._prefix}:{key.value}"

    def _tag_key(self, tag: CacheTag) -> str:
        return f"{self._prefix}:tag:{tag.value}"

    @asynccontextmanager
    async def _translate_errors(self, operation: str, key: Optional[str] = None):
        """Wrap redis-py errors in cache store exceptions."""
        try:
            yield
        except RedisTimeoutError as e:
            raise CacheOperationTimeoutException(
                operation, self._timeout_seconds, key
            ) from e
        except RedisConnectionError as e:
            raise CacheConnectionException(
                message=f"Redis connection lost during {operation}",
                original_error=e,
                key=key,
            ) from e
        except RedisError as e:
            raise CacheCommandException(operation, key, e) from e

    async def get(self, key: CacheKey) -> Optional[str]:
        async with self._translate_errors("get", key.value):
            value = await self._redis.get(self._key(key))
        if isinstance(value, bytes):
            try:
                value = value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CacheSerializationException(
                    key.value, "decode", e, size=len(value)
                ) from e
        return value

    async def set(
        self,
        key: CacheKey,
        value: str,
        ttl: TTL,
        tags: Sequence[CacheTag] = (),
    ) -> None:
        full_key = self._key(key)
        with tracer.start_as_current_span("cache_store.set") as span:
            span.set_attribute("cache.key", full_key)
            span.set_attribute("cache.ttl", ttl.seconds)
            async with self._translate_errors("set", key.value):
                pipe = self._redis.pipeline(transaction=True)
                pipe.set(full_key, value, ex=ttl.seconds)
                for tag in normalize_tags(tags):
                    pipe.sadd(self._tag_key(tag), full_key)
                await pipe.execute()

    async def delete(self, key: CacheKey) -> bool:
        async with self._translate_errors("delete", key.value):
            removed = await self._redis.delete(self._key(key))
        return bool(removed)

    async def flush_tags(self, tags: Sequence[CacheTag]) -> int:
        tag_keys = [self._tag_key(tag) for tag in normalize_tags(tags)]
        if not tag_keys:
            return 0

        with tracer.start_as_current_span("cache_store.flush_tags") as span:
            span.set_attribute("cache.tags", ",".join(tag_keys))
            async with self._translate_errors("flush_tags"):
                removed = await self._redis.eval(
                    FLUSH_TAGS_SCRIPT, len(tag_keys), *tag_keys
                )
            span.set_attribute("cache.removed", int(removed))

        logger.debug("Flushed cache tags", tags=tag_keys, removed=removed)
        return int(removed)

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self._redis.ping()
            return {"status": "healthy", "backend": "redis", "prefix": self._prefix}
        except RedisError as e:
            logger.warning("Redis health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "backend": "redis",
                "error": str(e),
            }

    async def close(self) -> None:
        if self._connection_factory is not None:
            await self._connection_factory.close()
