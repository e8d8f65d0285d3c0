"""
Interaction Service

Likes, dislikes, comments and answer acceptance. Every write goes through a
repository so its post-commit hooks run.
"""

from typing import Any, Dict

from sqlalchemy import func, select
import structlog

from ..constants import TARGET_TYPES
from ..core.database import DatabaseManager
from ..core.exceptions import (
    EntityNotFoundException,
    InvalidOperationException,
    PermissionDeniedException,
)
from ..models import TARGET_MODELS, Comment, Like, User
from ..repositories import (
    AnswerRepository,
    CommentRepository,
    LifecycleHooks,
    LikeRepository,
)
from ..resources import CommentResource, UserResource

logger = structlog.get_logger(__name__)

LIKED = "liked"
DISLIKED = "disliked"
UNLIKED = "unliked"
UNDISLIKED = "undisliked"


class InteractionService:
    """User interactions with questions, answers and solutions."""

    def __init__(self, database: DatabaseManager, hooks: LifecycleHooks):
        self.database = database
        self.hooks = hooks

    async def toggle_like(
        self, user_id: int, target_type: str, target_id: int, like: bool = True
    ) -> str:
        """
        Toggle a like (``like=True``) or dislike (``like=False``).

        Repeating the same vote removes it; the opposite vote flips it.

        Returns:
            One of ``liked``, ``disliked``, ``unliked``, ``undisliked``
        """
        async with self.database.session() as session:
            await self._require_target(session, target_type, target_id)
            likes = LikeRepository(session, self.hooks)
            existing = await likes.find_for(user_id, target_type, target_id)

            if existing is None:
                await likes.create(
                    Like(
                        user_id=user_id,
                        likable_type=target_type,
                        likable_id=target_id,
                        like=like,
                    )
                )
                outcome = LIKED if like else DISLIKED
            elif existing.like == like:
                await likes.delete(existing)
                outcome = UNLIKED if like else UNDISLIKED
            else:
                await likes.update(existing, like=like)
                outcome = LIKED if like else DISLIKED

        logger.info(
            "Like toggled",
            user_id=user_id,
            target_type=target_type,
            target_id=target_id,
            outcome=outcome,
        )
        return outcome

    async def toggle_acceptance(self, answer_id: int, user_id: int) -> bool:
        """
        Accept or un-accept an answer. Accepting clears any other accepted
        answer on the same question.

        Returns:
            The answer's new ``is_accepted`` value

        Raises:
            EntityNotFoundException: If the answer does not exist
            PermissionDeniedException: If ``user_id`` did not ask the question
        """
        async with self.database.session() as session:
            answers = AnswerRepository(session, self.hooks)
            answer = await answers.get_with_question(answer_id)
            if answer is None:
                raise EntityNotFoundException("Answer", answer_id)

            if answer.question.user_id != user_id:
                raise PermissionDeniedException(
                    "Only the question author can accept answers", user_id=user_id
                )

            accepted = not answer.is_accepted
            if accepted:
                await answers.clear_accepted(answer.question_id, except_id=answer.id)
            await answers.update(answer, is_accepted=accepted)

        logger.info(
            "Answer acceptance toggled",
            answer_id=answer_id,
            question_id=answer.question_id,
            accepted=accepted,
        )
        return accepted

    async def add_comment(
        self, user_id: int, target_type: str, target_id: int, body: str
    ) -> Dict[str, Any]:
        """Comment on a target. Returns the comment payload with its author."""
        body = (body or "").strip()
        if not body:
            raise InvalidOperationException("Comment body cannot be empty")

        async with self.database.session() as session:
            await self._require_target(session, target_type, target_id)
            comments = CommentRepository(session, self.hooks)
            comment = await comments.create(
                Comment(
                    user_id=user_id,
                    commentable_type=target_type,
                    commentable_id=target_id,
                    body=body,
                )
            )
            user = await session.get(User, user_id)

        return CommentResource.from_model(
            comment, user=UserResource.summary(user) if user else None
        ).to_payload()

    async def interaction_counts(self, target_type: str, target_id: int) -> Dict[str, int]:
        """Like, dislike and comment counts of one target."""
        self._check_target_type(target_type)
        async with self.database.session() as session:
            votes = (
                await session.execute(
                    select(Like.like, func.count(Like.id))
                    .where(Like.likable_type == target_type, Like.likable_id == target_id)
                    .group_by(Like.like)
                )
            ).all()
            comments_count = (
                await session.execute(
                    select(func.count(Comment.id)).where(
                        Comment.commentable_type == target_type,
                        Comment.commentable_id == target_id,
                    )
                )
            ).scalar_one()

        by_vote = {bool(vote): count for vote, count in votes}
        return {
            "likes_count": by_vote.get(True, 0),
            "dislikes_count": by_vote.get(False, 0),
            "comments_count": comments_count,
        }

    @staticmethod
    def _check_target_type(target_type: str) -> None:
        if target_type not in TARGET_TYPES:
            raise InvalidOperationException(
                f"Unknown target type '{target_type}'", allowed=list(TARGET_TYPES)
            )

    async def _require_target(self, session, target_type: str, target_id: int) -> None:
        self._check_target_type(target_type)
        model = TARGET_MODELS[target_type]
        target = await session.get(model, target_id)
        if target is None or getattr(target, "deleted_at", None) is not None:
            raise EntityNotFoundException(model.__name__, target_id)
