"""
Cache Value Objects

Immutable value objects for the cache domain.
Provides type safety and naming conventions for keys, tags and TTLs.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Tuple, Union

from ...constants import (
    TAG_POPULAR,
    TAG_QUESTIONS,
    TAG_RECENT,
    TAG_SOLUTIONS,
    TAG_TAGS,
    TAG_TRENDING,
    TAG_USERS,
)


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Enforces key naming conventions and provides validation.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not self.value:
            raise ValueError("Cache key cannot be empty")

        if len(self.value) > 250:
            raise ValueError("Cache key too long (max 250 characters)")

        if any(char.isspace() for char in self.value):
            raise ValueError("Cache key cannot contain whitespace")

    @classmethod
    def popular_questions(cls, limit: int) -> "CacheKey":
        """Create popular questions cache key."""
        return cls(f"popular_questions:{limit}")

    @classmethod
    def recent_questions(cls, limit: int) -> "CacheKey":
        """Create recent questions cache key."""
        return cls(f"recent_questions:{limit}")

    @classmethod
    def popular_solutions(cls, limit: int) -> "CacheKey":
        """Create popular solutions cache key."""
        return cls(f"popular_solutions:{limit}")

    @classmethod
    def user_profile_stats(cls, user_id: int) -> "CacheKey":
        """Create user profile cache key."""
        return cls(f"user_profile_stats:{user_id}")

    @classmethod
    def trending_tags(cls, limit: int) -> "CacheKey":
        """Create trending tags cache key."""
        return cls(f"trending_tags:{limit}")

    @classmethod
    def entity(cls, entity_name: str, entity_id: Any, suffix: str = "") -> "CacheKey":
        """Create a per-record key such as ``Question:7`` or ``Question:7:answers``."""
        if entity_id is None:
            raise ValueError("Entity cache key requires a persisted id")
        base = f"{entity_name}:{entity_id}"
        return cls(f"{base}:{suffix}" if suffix else base)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TTL:
    """
    Time To Live value object for cache expiration.

    Construct directly with seconds, or through the unit helpers.
    """

    seconds: int

    def __post_init__(self) -> None:
        """Validate TTL value."""
        if self.seconds <= 0:
            raise ValueError("TTL must be positive")
        if self.seconds > 86400 * 365:
            raise ValueError("TTL too large (max 1 year)")

    @classmethod
    def minutes(cls, minutes: int) -> "TTL":
        """Create TTL from minutes."""
        return cls(minutes * 60)

    @classmethod
    def hours(cls, hours: int) -> "TTL":
        """Create TTL from hours."""
        return cls(hours * 3600)

    @classmethod
    def days(cls, days: int) -> "TTL":
        """Create TTL from days."""
        return cls(days * 86400)

    def __str__(self) -> str:
        return f"{self.seconds}s"


@dataclass(frozen=True)
class CacheTag:
    """
    Cache tag value object for cache invalidation groups.

    A tag labels any number of entries; flushing it removes all of them.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate tag value."""
        if not self.value:
            raise ValueError("Cache tag cannot be empty")
        if len(self.value) > 50:
            raise ValueError("Cache tag too long (max 50 characters)")
        if any(char.isspace() for char in self.value):
            raise ValueError("Cache tag cannot contain whitespace")

    @classmethod
    def user(cls, user_id: Any) -> "CacheTag":
        """Create user-specific cache tag."""
        return cls(f"user:{user_id}")

    @classmethod
    def of(cls, *names: Union[str, "CacheTag"]) -> Tuple["CacheTag", ...]:
        """Build a tag tuple from names, dropping duplicates but keeping order."""
        return normalize_tags(names)

    def __str__(self) -> str:
        return self.value


QUESTIONS = CacheTag(TAG_QUESTIONS)
SOLUTIONS = CacheTag(TAG_SOLUTIONS)
USERS = CacheTag(TAG_USERS)
POPULAR = CacheTag(TAG_POPULAR)
RECENT = CacheTag(TAG_RECENT)
TAGS = CacheTag(TAG_TAGS)
TRENDING = CacheTag(TAG_TRENDING)


def normalize_tags(tags: Iterable[Union[str, CacheTag]]) -> Tuple[CacheTag, ...]:
    """Coerce strings to CacheTag and drop duplicates, preserving order."""
    seen = {}
    for tag in tags:
        tag = tag if isinstance(tag, CacheTag) else CacheTag(tag)
        seen.setdefault(tag.value, tag)
    return tuple(seen.values())


@dataclass(frozen=True)
class QueryDescriptor:
    """Fixed caching policy of one named read: key, lifetime and tags."""

    key: CacheKey
    ttl: TTL
    tags: Tuple[CacheTag, ...] = ()
