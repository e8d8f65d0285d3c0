"""
Cache Repository Interfaces

Abstract cache store contract. Components receive a store instance
explicitly; no component reaches for a process-wide cache.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

from .value_objects import CacheKey, CacheTag, TTL


class CacheStore(ABC):
    """
    Key/value store with TTL expiry and tag-scoped bulk invalidation.

    Values are opaque serialized strings. Implementations must make a single
    ``set``/``get`` atomic per key, and ``flush_tags`` atomic as seen by
    other callers.
    """

    @abstractmethod
    async def get(self, key: CacheKey) -> Optional[str]:
        """Return the unexpired value for ``key`` or None."""
        pass

    @abstractmethod
    async def set(
        self,
        key: CacheKey,
        value: str,
        ttl: TTL,
        tags: Sequence[CacheTag] = (),
    ) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        pass

    @abstractmethod
    async def delete(self, key: CacheKey) -> bool:
        """Remove ``key``. Returns True if an entry was removed."""
        pass

    @abstractmethod
    async def flush_tags(self, tags: Sequence[CacheTag]) -> int:
        """Remove every entry carrying any of ``tags``. Returns count removed."""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Report store reachability."""
        pass

    async def close(self) -> None:
        """Release connections held by the store."""
        return None
