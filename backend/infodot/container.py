"""
InfoDot Application Container

Builds the data-access core with explicit dependencies: database, cache
store, cache-aside accessor, broadcaster, post-commit hooks and services.
Request handlers receive the container instead of reaching for globals.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from .constants import APP_NAME, APP_VERSION
from .core.config import Settings, get_settings
from .core.database import DatabaseManager
from .core.logging import configure_logging
from .domain.cache.repository_interfaces import CacheStore
from .infrastructure.cache.memory_store import InMemoryCacheStore
from .infrastructure.cache.redis_store import RedisCacheStore
from .infrastructure.redis.connection_factory import RedisConnectionFactory
from .repositories import BaseRepository, LifecycleHooks
from .services.broadcasting import (
    BroadcastHook,
    Broadcaster,
    RedisBroadcastBackend,
)
from .services.cache import CacheAside, CacheInvalidationHook
from .services.interactions import InteractionService
from .services.query_optimization import QueryOptimizationService
from .services.search import SearchService

logger = structlog.get_logger()

RepositoryT = TypeVar("RepositoryT", bound=BaseRepository)


@dataclass
class Container:
    """Wired application components."""

    settings: Settings
    database: DatabaseManager
    store: CacheStore
    cache: CacheAside
    broadcaster: Broadcaster
    hooks: LifecycleHooks
    queries: QueryOptimizationService
    search: SearchService
    interactions: InteractionService
    redis_factory: Optional[RedisConnectionFactory] = None

    def repository(self, repository_class: Type[RepositoryT], session: AsyncSession) -> RepositoryT:
        """Instantiate a repository bound to ``session`` with the shared hooks."""
        return repository_class(session, hooks=self.hooks)

    async def close(self) -> None:
        await self.store.close()
        if self.redis_factory is not None:
            await self.redis_factory.close()
        await self.database.close()
        logger.info(f"{APP_NAME} container closed")


async def build_container(
    settings: Optional[Settings] = None,
    store: Optional[CacheStore] = None,
    broadcast_backend=None,
) -> Container:
    """
    Wire the application.

    Args:
        settings: Defaults to ``get_settings()``
        store: Cache store; a Redis store is built from settings when omitted
            and caching is enabled, otherwise an in-memory store
        broadcast_backend: Broadcast transport; Redis pub/sub when omitted
    """
    settings = settings or get_settings()

    database = DatabaseManager(settings)
    await database.initialize()

    redis_factory = None
    if store is None or broadcast_backend is None:
        redis_factory = RedisConnectionFactory(settings)
        client = await redis_factory.get_client()
        if store is None:
            store = (
                RedisCacheStore(
                    client,
                    prefix=settings.CACHE_PREFIX,
                    timeout_seconds=settings.REDIS_SOCKET_TIMEOUT,
                )
                if settings.CACHE_ENABLED
                else InMemoryCacheStore()
            )
        if broadcast_backend is None:
            broadcast_backend = RedisBroadcastBackend(client)

    cache = CacheAside.from_settings(store, settings)
    broadcaster = Broadcaster.from_settings(broadcast_backend, settings)
    hooks = LifecycleHooks(CacheInvalidationHook(cache), BroadcastHook(broadcaster))

    container = Container(
        settings=settings,
        database=database,
        store=store,
        cache=cache,
        broadcaster=broadcaster,
        hooks=hooks,
        queries=QueryOptimizationService(cache, database, settings),
        search=SearchService(database),
        interactions=InteractionService(database, hooks),
        redis_factory=redis_factory,
    )

    logger.info(
        f"{APP_NAME} container initialized",
        version=APP_VERSION,
        environment=settings.ENVIRONMENT,
        cache_enabled=settings.CACHE_ENABLED,
        single_flight=settings.CACHE_SINGLE_FLIGHT,
    )
    return container


@asynccontextmanager
async def application(
    settings: Optional[Settings] = None, **overrides
) -> AsyncGenerator[Container, None]:
    """Lifespan: configure logging, build the container, close it on exit."""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings=settings)

    container = await build_container(settings, **overrides)
    try:
        yield container
    finally:
        await container.close()
