"""
Redis Infrastructure Module

Shared Redis client construction and the cache store exception family.
"""

from .connection_factory import RedisConnectionFactory
from .exceptions import (
    CacheStoreException,
    CacheCommandException,
    CacheConnectionException,
    CacheOperationTimeoutException,
    CacheSerializationException,
)

__all__ = [
    "RedisConnectionFactory",
    "CacheStoreException",
    "CacheCommandException",
    "CacheConnectionException",
    "CacheOperationTimeoutException",
    "CacheSerializationException",
]
