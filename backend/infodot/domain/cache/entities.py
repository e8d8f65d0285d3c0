"""
Cache Domain Entities

A cache entry is written once and replaced wholesale on the next write for
its key; nothing mutates an entry in place.
"""

from dataclasses import dataclass, field
from typing import FrozenSet

from .value_objects import CacheKey, CacheTag, TTL


@dataclass(frozen=True)
class CacheEntry:
    """
    Cached payload with its expiry and invalidation tags.

    ``expires_at`` is expressed on the clock of the store that created the
    entry, not necessarily wall-clock time.
    """

    key: CacheKey
    value: str
    expires_at: float
    tags: FrozenSet[CacheTag] = field(default_factory=frozenset)

    @classmethod
    def create(
        cls, key: CacheKey, value: str, ttl: TTL, now: float, tags=()
    ) -> "CacheEntry":
        """Create entry expiring ``ttl`` seconds after ``now``."""
        return cls(
            key=key,
            value=value,
            expires_at=now + ttl.seconds,
            tags=frozenset(tags),
        )

    def is_expired(self, now: float) -> bool:
        """Check if cache entry is expired at ``now``."""
        return now >= self.expires_at

    def has_tag(self, tag: CacheTag) -> bool:
        """Check if cache entry has specific tag."""
        return tag in self.tags

    def remaining_seconds(self, now: float) -> float:
        """Seconds left before expiry, never negative."""
        return max(0.0, self.expires_at - now)
