"""
Like and Comment Repositories

Both attach to a polymorphic target (question, answer or solution).
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import Comment, Like
from .base import BaseRepository
from .hooks import LifecycleHooks


class LikeRepository(BaseRepository):
    """One like/dislike row per (user, target)."""

    def __init__(self, session: AsyncSession, hooks: Optional[LifecycleHooks] = None):
        super().__init__(session, Like, hooks)

    async def find_for(
        self, user_id: int, target_type: str, target_id: int
    ) -> Optional[Like]:
        result = await self.session.execute(
            select(Like).where(
                Like.user_id == user_id,
                Like.likable_type == target_type,
                Like.likable_id == target_id,
            )
        )
        return result.scalar_one_or_none()


class CommentRepository(BaseRepository):
    """Comments, oldest first."""

    def __init__(self, session: AsyncSession, hooks: Optional[LifecycleHooks] = None):
        super().__init__(session, Comment, hooks)

    async def for_target(self, target_type: str, target_id: int) -> List[Comment]:
        stmt = (
            select(Comment)
            .options(selectinload(Comment.user))
            .where(
                Comment.commentable_type == target_type,
                Comment.commentable_id == target_id,
            )
            .order_by(Comment.created_at, Comment.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
