"""
Cache Domain Module

Value objects, entities and the store interface for the cache-aside layer.
"""

from .entities import CacheEntry
from .repository_interfaces import CacheStore
from .value_objects import (
    CacheKey,
    CacheTag,
    QueryDescriptor,
    TTL,
    normalize_tags,
)

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheStore",
    "CacheTag",
    "QueryDescriptor",
    "TTL",
    "normalize_tags",
]
