"""
In-Memory Cache Store

Single-process ``CacheStore`` with an explicit tag index. Expired entries
are dropped lazily on access. The clock is injected so tests can advance
time without sleeping.
"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional, Sequence, Set

import structlog

from ...domain.cache.entities import CacheEntry
from ...domain.cache.repository_interfaces import CacheStore
from ...domain.cache.value_objects import CacheKey, CacheTag, TTL, normalize_tags

logger = structlog.get_logger(__name__)


class InMemoryCacheStore(CacheStore):
    """Dict-backed store: key -> entry, plus tag -> set of keys."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._tag_index: Dict[str, Set[str]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: CacheKey) -> Optional[str]:
        async with self._lock:
            entry = self._entries.get(key.value)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                self._remove(key.value)
                return None
            return entry.value

    async def set(
        self,
        key: CacheKey,
        value: str,
        ttl: TTL,
        tags: Sequence[CacheTag] = (),
    ) -> None:
        tags = normalize_tags(tags)
        async with self._lock:
            # Replacing an entry drops its old tag memberships.
            self._remove(key.value)
            self._entries[key.value] = CacheEntry.create(
                key, value, ttl, self._clock(), tags
            )
            for tag in tags:
                self._tag_index.setdefault(tag.value, set()).add(key.value)

    async def delete(self, key: CacheKey) -> bool:
        async with self._lock:
            return self._remove(key.value)

    async def flush_tags(self, tags: Sequence[CacheTag]) -> int:
        removed = 0
        async with self._lock:
            for tag in normalize_tags(tags):
                for key in self._tag_index.pop(tag.value, set()):
                    if self._remove(key):
                        removed += 1
        logger.debug(
            "Flushed cache tags",
            tags=[str(tag) for tag in tags],
            removed=removed,
        )
        return removed

    async def health_check(self) -> Dict[str, Any]:
        async with self._lock:
            return {
                "status": "healthy",
                "backend": "memory",
                "entries": len(self._entries),
                "tags": len(self._tag_index),
            }

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for e in self._entries.values() if not e.is_expired(now))

    def keys_for_tag(self, tag: CacheTag) -> Set[str]:
        """Keys currently indexed under ``tag``."""
        return set(self._tag_index.get(tag.value, set()))

    def _remove(self, key: str) -> bool:
        """Drop ``key`` and its tag memberships. Caller holds the lock."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        for tag in entry.tags:
            members = self._tag_index.get(tag.value)
            if members is None:
                continue
            members.discard(key)
            if not members:
                del self._tag_index[tag.value]
        return True
