"""
Redis Connection Factory

Builds the shared asyncio Redis client from settings and verifies it with a
PING, retrying transient connection failures.
"""

from typing import Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
    RedisError,
)
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)
import structlog

from ...core.config import Settings, get_settings
from .exceptions import CacheConnectionException

logger = structlog.get_logger(__name__)


class RedisConnectionFactory:
    """
    Factory for the shared Redis client.

    One pool per factory; the cache store and the broadcaster share it.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError)),
        before_sleep=lambda retry_state: logger.warning(
            "Redis connection retry",
            attempt=retry_state.attempt_number,
            wait_time=retry_state.next_action.sleep,
        ),
        reraise=True,
    )
    async def _ping(self, client: Redis) -> None:
        await client.ping()

    async def get_client(self) -> Redis:
        """Return the shared client, creating and verifying it on first use."""
        if self._client is not None:
            return self._client

        pool = ConnectionPool.from_url(
            self.settings.REDIS_URL,
            max_connections=self.settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
            decode_responses=True,
        )
        client = Redis(connection_pool=pool)

        try:
            await self._ping(client)
        except RedisError as e:
            await pool.disconnect()
            logger.error("Failed to connect to Redis", error=str(e))
            raise CacheConnectionException(
                message=f"Redis connection failed: {e}",
                url=self.settings.REDIS_URL,
                original_error=e,
            ) from e

        self._pool = pool
        self._client = client
        logger.info(
            "Redis client initialized",
            max_connections=self.settings.REDIS_MAX_CONNECTIONS,
        )
        return client

    async def close(self) -> None:
        """Close the client and disconnect the pool."""
        if self._client is not None:
            await self._client.aclose()
        if self._pool is not None:
            await self._pool.disconnect()
        self._client = None
        self._pool = None
        logger.info("Redis client closed")
