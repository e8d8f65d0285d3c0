"""
Broadcast Hook

Post-commit hook announcing newly created questions and answers. Publishing
is fire-and-forget: a failed publish is logged and the committed write
stands.
"""

from typing import Any, Dict, Type

import structlog

from ...core.exceptions import BroadcastException
from ...models import Answer, Question
from ...repositories.hooks import LifecycleAction
from .broadcaster import Broadcaster
from .events import AnswerWasPosted, BroadcastEvent, QuestionWasAsked

logger = structlog.get_logger()

EVENTS_ON_CREATE: Dict[Type, Type[BroadcastEvent]] = {
    Question: QuestionWasAsked,
    Answer: AnswerWasPosted,
}


class BroadcastHook:
    """Publish creation events for questions and answers."""

    def __init__(self, broadcaster: Broadcaster):
        self.broadcaster = broadcaster

    async def __call__(self, entity: Any, action: LifecycleAction) -> None:
        if action is not LifecycleAction.CREATED:
            return

        event_class = EVENTS_ON_CREATE.get(type(entity))
        if event_class is None:
            return

        event = event_class(entity)
        try:
            await self.broadcaster.broadcast(event)
        except BroadcastException as e:
            logger.error(
                "Broadcast: Failed to publish event",
                event_name=event.broadcast_as(),
                entity_id=entity.id,
                error=str(e),
                details=e.details,
            )
        except Exception as e:
            logger.error(
                "Broadcast: Unexpected error publishing event",
                event_name=event.broadcast_as(),
                entity_id=entity.id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
