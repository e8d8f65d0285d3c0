"""
Cache services: the cache-aside accessor and the post-commit invalidation hook.
"""

from .cache_aside import CacheAside, TaggedCache
from .invalidation import CacheInvalidationHook

__all__ = ["CacheAside", "CacheInvalidationHook", "TaggedCache"]
