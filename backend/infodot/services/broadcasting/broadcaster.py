"""
Broadcaster

Publishes events to named channels. The Redis backend sends one pub/sub
message per event with body ``{"event": name, "data": payload}``; the
in-memory backend records messages for tests and single-process use.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError
import structlog

from ...core.config import Settings, get_settings
from ...core.exceptions import BroadcastException
from .events import BroadcastEvent

logger = structlog.get_logger()


class RedisBroadcastBackend:
    """Redis pub/sub transport."""

    def __init__(self, redis: Redis):
        """
        Args:
            redis: Redis client (REQUIRED)

        Raises:
            TypeError: If redis is not Redis instance
        """
        if not isinstance(redis, Redis):
            raise TypeError(f"redis must be Redis instance, got {type(redis).__name__}")

        self._redis = redis

    async def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> int:
        """Publish and return the number of subscribers that received it."""
        message = json.dumps({"event": event, "data": payload}, default=str)
        try:
            receivers = await self._redis.publish(channel, message)
        except RedisError as e:
            raise BroadcastException(channel, event, original_error=e) from e
        return int(receivers or 0)


@dataclass(frozen=True)
class PublishedMessage:
    channel: str
    event: str
    payload: Dict[str, Any]


class InMemoryBroadcastBackend:
    """Records published messages instead of sending them."""

    def __init__(self):
        self.published: List[PublishedMessage] = []

    async def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> int:
        self.published.append(PublishedMessage(channel, event, payload))
        return 0

    def on_channel(self, channel: str) -> List[PublishedMessage]:
        return [m for m in self.published if m.channel == channel]


class Broadcaster:
    """Sends events to ``{prefix}{channel}`` through a backend."""

    def __init__(self, backend, channel_prefix: str = "private-"):
        self.backend = backend
        self.channel_prefix = channel_prefix

    @classmethod
    def from_settings(cls, backend, settings: Optional[Settings] = None) -> "Broadcaster":
        settings = settings or get_settings()
        return cls(backend, channel_prefix=settings.BROADCAST_CHANNEL_PREFIX)

    def channel_for(self, event: BroadcastEvent) -> str:
        return f"{self.channel_prefix}{event.broadcast_on()}"

    async def broadcast(self, event: BroadcastEvent) -> int:
        """
        Publish ``event``.

        Raises:
            BroadcastException: If the backend cannot deliver the message
        """
        channel = self.channel_for(event)
        name = event.broadcast_as()
        receivers = await self.backend.publish(channel, name, event.broadcast_with())

        logger.debug(
            "Broadcast: Event published",
            channel=channel,
            event_name=name,
            receivers=receivers,
        )
        return receivers
