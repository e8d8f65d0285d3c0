"""
Question and Answer Repositories
"""

from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from ..core.exceptions import EntityNotFoundException
from ..models import Answer, Question, User
from .base import BaseRepository
from .hooks import LifecycleHooks

logger = structlog.get_logger()


async def _load_author(session: AsyncSession, user_id: int) -> User:
    author = await session.get(User, user_id)
    if author is None:
        raise EntityNotFoundException("User", user_id)
    return author


class QuestionRepository(BaseRepository):
    """Questions, soft-deleted by ``delete``."""

    load_on_create = ("user",)

    def __init__(self, session: AsyncSession, hooks: Optional[LifecycleHooks] = None):
        super().__init__(session, Question, hooks)

    async def ask(
        self,
        user_id: int,
        question: str,
        description: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> Question:
        """Create a question with its author attached for broadcast payloads."""
        author = await _load_author(self.session, user_id)
        return await self.create(
            Question(
                user=author,
                question=question,
                description=description,
                tags=tags,
            )
        )

    async def get_with_answers(self, question_id: int) -> Optional[Question]:
        stmt = (
            select(Question)
            .options(
                selectinload(Question.user),
                selectinload(Question.answers).selectinload(Answer.user),
            )
            .where(Question.id == question_id, Question.deleted_at.is_(None))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class AnswerRepository(BaseRepository):
    """Answers to questions."""

    load_on_create = ("user",)

    def __init__(self, session: AsyncSession, hooks: Optional[LifecycleHooks] = None):
        super().__init__(session, Answer, hooks)

    async def post(self, user_id: int, question_id: int, content: str) -> Answer:
        """Create an answer on ``question_id`` with its author attached."""
        question = await self.session.get(Question, question_id)
        if question is None or question.is_deleted:
            raise EntityNotFoundException("Question", question_id)
        author = await _load_author(self.session, user_id)
        return await self.create(
            Answer(user=author, question_id=question_id, content=content)
        )

    async def get_with_question(self, answer_id: int) -> Optional[Answer]:
        stmt = (
            select(Answer)
            .options(selectinload(Answer.question))
            .where(Answer.id == answer_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def for_question(self, question_id: int) -> List[Answer]:
        stmt = (
            select(Answer)
            .where(Answer.question_id == question_id)
            .order_by(Answer.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def clear_accepted(self, question_id: int, except_id: int) -> int:
        """Un-accept every other answer of ``question_id``, without committing."""
        result = await self.session.execute(
            update(Answer)
            .where(
                Answer.question_id == question_id,
                Answer.id != except_id,
                Answer.is_accepted.is_(True),
            )
            .values(is_accepted=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
