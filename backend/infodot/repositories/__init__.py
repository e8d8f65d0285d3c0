"""
Repository Pattern Implementation

All writes go through repositories so post-commit hooks (cache
invalidation, broadcast) run for every committed change.
"""

from .base import BaseRepository
from .hooks import LifecycleAction, LifecycleHooks, PostCommitHook
from .interactions import CommentRepository, LikeRepository
from .questions import AnswerRepository, QuestionRepository
from .solutions import SolutionRepository
from .users import UserRepository

__all__ = [
    "BaseRepository",
    "LifecycleAction",
    "LifecycleHooks",
    "PostCommitHook",
    "AnswerRepository",
    "CommentRepository",
    "LikeRepository",
    "QuestionRepository",
    "SolutionRepository",
    "UserRepository",
]
