"""
Real-time change broadcast.
"""

from .broadcaster import (
    Broadcaster,
    InMemoryBroadcastBackend,
    PublishedMessage,
    RedisBroadcastBackend,
)
from .events import AnswerWasPosted, BroadcastEvent, QuestionWasAsked
from .hooks import BroadcastHook

__all__ = [
    "AnswerWasPosted",
    "BroadcastEvent",
    "BroadcastHook",
    "Broadcaster",
    "InMemoryBroadcastBackend",
    "PublishedMessage",
    "QuestionWasAsked",
    "RedisBroadcastBackend",
]
