"""
User Repository

Users and the follow graph between them.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ..core.exceptions import InvalidOperationException
from ..models import Follow, User
from .base import BaseRepository
from .hooks import LifecycleAction, LifecycleHooks

logger = structlog.get_logger()


class UserRepository(BaseRepository):
    """User-specific repository with follow management."""

    def __init__(self, session: AsyncSession, hooks: Optional[LifecycleHooks] = None):
        super().__init__(session, User, hooks)

    async def get_by_email(self, email: str) -> Optional[User]:
        if not email:
            raise ValueError("email is required (cannot be empty)")

        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def register(
        self, name: str, email: str, profile_photo_path: Optional[str] = None
    ) -> User:
        """Create a user account."""
        return await self.create(
            User(name=name, email=email, profile_photo_path=profile_photo_path)
        )

    async def follow(self, follower_id: int, following_id: int) -> Follow:
        """
        Make ``follower_id`` follow ``following_id``. Following twice is a no-op.

        Raises:
            InvalidOperationException: If a user tries to follow themselves
        """
        if follower_id == following_id:
            raise InvalidOperationException(
                "Users cannot follow themselves", user_id=follower_id
            )

        existing = await self._find_follow(follower_id, following_id)
        if existing is not None:
            return existing

        edge = Follow(follower_id=follower_id, following_id=following_id)
        self.session.add(edge)
        await self._commit(edge, "follow")

        logger.info(
            "UserRepository: Follow created",
            follower_id=follower_id,
            following_id=following_id,
        )
        await self.hooks.run(edge, LifecycleAction.CREATED)
        return edge

    async def unfollow(self, follower_id: int, following_id: int) -> bool:
        """Remove a follow edge. Returns False if it did not exist."""
        edge = await self._find_follow(follower_id, following_id)
        if edge is None:
            return False

        await self.session.delete(edge)
        await self._commit(edge, "unfollow")
        await self.hooks.run(edge, LifecycleAction.DELETED)
        return True

    async def followers_count(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Follow.id)).where(Follow.following_id == user_id)
        )
        return result.scalar_one()

    async def following_count(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Follow.id)).where(Follow.follower_id == user_id)
        )
        return result.scalar_one()

    async def _find_follow(self, follower_id: int, following_id: int) -> Optional[Follow]:
        result = await self.session.execute(
            select(Follow).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        return result.scalar_one_or_none()
