"""
Cache Invalidation Hook

Post-commit hook that clears an entity's own cache key and the tags of
every cached read it can appear in. It guarantees the next read
recomputes; reads already past the cache check may still return old data.
"""

from typing import Any

import structlog

from ...infrastructure.redis.exceptions import CacheStoreException
from ...models import Cacheable
from ...repositories.hooks import LifecycleAction
from .cache_aside import CacheAside

logger = structlog.get_logger(__name__)


class CacheInvalidationHook:
    """Invalidate caches after committed writes of ``Cacheable`` entities."""

    def __init__(self, cache: CacheAside):
        self.cache = cache

    async def __call__(self, entity: Any, action: LifecycleAction) -> None:
        if not isinstance(entity, Cacheable):
            return

        try:
            await self.clear_model_cache(entity)
        except CacheStoreException as e:
            # The write is committed; a stale entry expires with its TTL.
            logger.error(
                "Cache invalidation failed after commit",
                entity=type(entity).__name__,
                entity_id=entity.id,
                action=action.value,
                error=str(e),
                error_code=e.error_code,
            )

    async def clear_model_cache(self, entity: Cacheable) -> int:
        """Invalidate the entity's own key and its invalidation tags."""
        removed = await self.cache.invalidate_key(entity.cache_key())
        removed += await self.cache.invalidate_tags(entity.invalidation_tags())

        logger.debug(
            "Entity cache cleared",
            entity=type(entity).__name__,
            entity_id=entity.id,
            removed=removed,
        )
        return removed
