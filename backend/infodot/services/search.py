"""
Search Service

Term search over each model's searchable columns. A term is cleaned of
boolean-mode operator characters and split into words; a row matches when
every word appears, case-insensitively, in at least one searchable column.
"""

import re
from typing import Any, Dict, List, Type

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import selectinload
import structlog

from ..core.database import DatabaseManager
from ..models import Base, Question, Solution, User
from ..resources import QuestionResource, SolutionResource, UserResource

logger = structlog.get_logger(__name__)

RESERVED_SYMBOLS = "-+<>@()~"
_RESERVED = re.compile("[" + re.escape(RESERVED_SYMBOLS) + "]")


def search_words(term: str) -> List[str]:
    """Strip reserved symbols and split into words."""
    return _RESERVED.sub("", term or "").split()


def _escape_like(word: str) -> str:
    return word.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_search_filter(model: Type[Base], words: List[str]):
    """AND over words of an OR over the model's searchable columns."""
    columns = [getattr(model, name) for name in model.__searchable__]
    return and_(
        *(
            or_(
                *(
                    column.ilike(f"%{_escape_like(word)}%", escape="\\")
                    for column in columns
                )
            )
            for word in words
        )
    )


class SearchService:
    """Search questions, solutions and users by free-text term."""

    def __init__(self, database: DatabaseManager):
        self.database = database

    async def search(self, model: Type[Base], term: str, limit: int = 20) -> List[Any]:
        """
        Rows of ``model`` matching ``term``, newest first.

        Raises:
            ValueError: If ``model`` declares no searchable columns
        """
        if not getattr(model, "__searchable__", ()):
            raise ValueError(f"{model.__name__} has no searchable columns")

        words = search_words(term)
        if not words:
            return []

        stmt = select(model).where(build_search_filter(model, words))
        if hasattr(model, "deleted_at"):
            stmt = stmt.where(model.deleted_at.is_(None))
        if hasattr(model, "user"):
            stmt = stmt.options(selectinload(model.user))
        stmt = stmt.order_by(model.id.desc()).limit(limit)

        async with self.database.session() as session:
            results = list((await session.execute(stmt)).scalars().all())

        logger.debug(
            "Search completed",
            model=model.__name__,
            words=len(words),
            results=len(results),
        )
        return results

    async def search_all(self, term: str, limit: int = 5) -> Dict[str, List[Dict[str, Any]]]:
        """Question and solution matches as resource payloads."""
        questions = await self.search(Question, term, limit)
        solutions = await self.search(Solution, term, limit)
        return {
            "questions": [
                QuestionResource.from_model(q, user=UserResource.summary(q.user)).to_payload()
                for q in questions
            ],
            "solutions": [
                SolutionResource.from_model(s, user=UserResource.summary(s.user)).to_payload()
                for s in solutions
            ],
        }

    async def search_users(self, term: str, limit: int = 5) -> List[Dict[str, Any]]:
        return [
            UserResource.summary(user).to_payload()
            for user in await self.search(User, term, limit)
        ]
