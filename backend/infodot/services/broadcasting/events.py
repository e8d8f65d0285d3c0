"""
Broadcast Events

Each event names itself, the channel it goes to, and the flat payload it
carries. The payload only contains primitives and one nested author map.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ...constants import QUESTION_CHANNEL_TEMPLATE, QUESTIONS_CHANNEL
from ...models import Answer, Question


def _author(entity) -> Dict[str, Any]:
    return {"id": entity.user.id, "name": entity.user.name}


def _iso(value) -> Any:
    return value.isoformat() if value is not None else None


class BroadcastEvent(ABC):
    """Event published to a real-time channel."""

    def broadcast_as(self) -> str:
        return type(self).__name__

    @abstractmethod
    def broadcast_on(self) -> str:
        """Channel name, without the private prefix."""
        pass

    @abstractmethod
    def broadcast_with(self) -> Dict[str, Any]:
        pass


class QuestionWasAsked(BroadcastEvent):
    """A new question, announced on the global questions channel."""

    def __init__(self, question: Question):
        self.question = question

    def broadcast_on(self) -> str:
        return QUESTIONS_CHANNEL

    def broadcast_with(self) -> Dict[str, Any]:
        return {
            "id": self.question.id,
            "question": self.question.question,
            "description": self.question.description,
            "tags": self.question.tags,
            "user": _author(self.question),
            "created_at": _iso(self.question.created_at),
        }


class AnswerWasPosted(BroadcastEvent):
    """A new answer, announced on its question's channel."""

    def __init__(self, answer: Answer):
        self.answer = answer

    def broadcast_on(self) -> str:
        return QUESTION_CHANNEL_TEMPLATE.format(question_id=self.answer.question_id)

    def broadcast_with(self) -> Dict[str, Any]:
        return {
            "id": self.answer.id,
            "content": self.answer.content,
            "question_id": self.answer.question_id,
            "is_accepted": bool(self.answer.is_accepted),
            "user": _author(self.answer),
            "created_at": _iso(self.answer.created_at),
        }
