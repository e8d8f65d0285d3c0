"""
Query Optimization Service

Named, parameterized reads wrapped in cache-aside. Each read has a fixed
policy: a key that encodes every parameter, a TTL, and the tags that the
post-commit invalidation hooks flush.

| Read                  | Key                      | TTL   | Tags              |
|-----------------------|--------------------------|-------|-------------------|
| popular questions     | popular_questions:{n}    | 300   | questions,popular |
| recent questions      | recent_questions:{n}     | 60    | questions,recent  |
| popular solutions     | popular_solutions:{n}    | 300   | solutions,popular |
| user profile + stats  | user_profile_stats:{id}  | 600   | users,user:{id}   |
| trending tags         | trending_tags:{n}        | 3600  | tags,trending     |
"""

import inspect
from collections import Counter
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Type, Union

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload
from opentelemetry import trace
import structlog

from ..constants import ALL_QUERY_TAGS, TARGET_QUESTION, TARGET_SOLUTION
from ..core.config import Settings, get_settings
from ..core.database import DatabaseManager
from ..core.exceptions import EntityNotFoundException
from ..domain.cache.value_objects import (
    POPULAR,
    QUESTIONS,
    RECENT,
    SOLUTIONS,
    TAGS,
    TRENDING,
    USERS,
    CacheKey,
    CacheTag,
    QueryDescriptor,
    TTL,
)
from ..models import Answer, Base, Comment, Follow, Like, Question, Solution, User
from ..resources import (
    AnswerResource,
    QuestionResource,
    SolutionResource,
    UserResource,
)
from .cache.cache_aside import CacheAside

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

PROFILE_RECENT_ITEMS = 5


def _answers_count():
    return (
        select(func.count(Answer.id))
        .where(Answer.question_id == Question.id)
        .correlate(Question)
        .scalar_subquery()
        .label("answers_count")
    )


def _likes_count(model: Type[Base], target_type: str):
    return (
        select(func.count(Like.id))
        .where(
            Like.likable_type == target_type,
            Like.likable_id == model.id,
            Like.like.is_(True),
        )
        .correlate(model)
        .scalar_subquery()
        .label("likes_count")
    )


def _comments_count(model: Type[Base], target_type: str):
    return (
        select(func.count(Comment.id))
        .where(
            Comment.commentable_type == target_type,
            Comment.commentable_id == model.id,
        )
        .correlate(model)
        .scalar_subquery()
        .label("comments_count")
    )


def count_tags(tag_strings: Iterable[Optional[str]], limit: int) -> Dict[str, int]:
    """
    Aggregate comma-separated tag strings into the ``limit`` most frequent tags.

    Tokens are trimmed and empty ones dropped. Ties keep first-seen order.
    """
    counts: Counter = Counter()
    for tag_string in tag_strings:
        if not tag_string:
            continue
        for tag in tag_string.split(","):
            tag = tag.strip()
            if tag:
                counts[tag] += 1
    # most_common sorts stably, so equal counts stay in insertion order.
    return dict(counts.most_common(limit))


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError("limit must be at least 1")


class QueryOptimizationService:
    """Cached named reads over the relational store."""

    def __init__(
        self,
        cache: CacheAside,
        database: DatabaseManager,
        settings: Optional[Settings] = None,
    ):
        self.cache = cache
        self.database = database
        self.settings = settings or get_settings()

    # Descriptors

    def popular_questions_policy(self, limit: int, ttl: Optional[int] = None) -> QueryDescriptor:
        return QueryDescriptor(
            key=CacheKey.popular_questions(limit),
            ttl=TTL(ttl or self.settings.POPULAR_QUESTIONS_TTL),
            tags=(QUESTIONS, POPULAR),
        )

    def recent_questions_policy(self, limit: int, ttl: Optional[int] = None) -> QueryDescriptor:
        return QueryDescriptor(
            key=CacheKey.recent_questions(limit),
            ttl=TTL(ttl or self.settings.RECENT_QUESTIONS_TTL),
            tags=(QUESTIONS, RECENT),
        )

    def popular_solutions_policy(self, limit: int, ttl: Optional[int] = None) -> QueryDescriptor:
        return QueryDescriptor(
            key=CacheKey.popular_solutions(limit),
            ttl=TTL(ttl or self.settings.POPULAR_SOLUTIONS_TTL),
            tags=(SOLUTIONS, POPULAR),
        )

    def user_profile_policy(self, user_id: int, ttl: Optional[int] = None) -> QueryDescriptor:
        return QueryDescriptor(
            key=CacheKey.user_profile_stats(user_id),
            ttl=TTL(ttl or self.settings.USER_PROFILE_TTL),
            tags=(USERS, CacheTag.user(user_id)),
        )

    def trending_tags_policy(self, limit: int, ttl: Optional[int] = None) -> QueryDescriptor:
        return QueryDescriptor(
            key=CacheKey.trending_tags(limit),
            ttl=TTL(ttl or self.settings.TRENDING_TAGS_TTL),
            tags=(TAGS, TRENDING),
        )

    # Named reads

    async def get_popular_questions(
        self, limit: int = 10, ttl: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Questions by answer count, then like count, with their authors."""
        _check_limit(limit)

        async def fetch() -> List[Dict[str, Any]]:
            answers_count = _answers_count()
            likes_count = _likes_count(Question, TARGET_QUESTION)
            stmt = (
                select(Question, answers_count, likes_count)
                .options(selectinload(Question.user))
                .where(Question.deleted_at.is_(None))
                .order_by(answers_count.desc(), likes_count.desc(), Question.id.desc())
                .limit(limit)
            )
            async with self.database.session() as session:
                rows = (await session.execute(stmt)).all()
            return [
                QuestionResource.from_model(
                    question,
                    user=UserResource.summary(question.user),
                    answers_count=answers,
                    likes_count=likes,
                ).to_payload()
                for question, answers, likes in rows
            ]

        with tracer.start_as_current_span("query.popular_questions") as span:
            span.set_attribute("limit", limit)
            return await self.cache.remember(
                self.popular_questions_policy(limit, ttl), fetch
            )

    async def get_recent_questions(
        self, limit: int = 10, ttl: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Newest questions first, with their authors and answer counts."""
        _check_limit(limit)

        async def fetch() -> List[Dict[str, Any]]:
            answers_count = _answers_count()
            stmt = (
                select(Question, answers_count)
                .options(selectinload(Question.user))
                .where(Question.deleted_at.is_(None))
                .order_by(Question.created_at.desc(), Question.id.desc())
                .limit(limit)
            )
            async with self.database.session() as session:
                rows = (await session.execute(stmt)).all()
            return [
                QuestionResource.from_model(
                    question,
                    user=UserResource.summary(question.user),
                    answers_count=answers,
                ).to_payload()
                for question, answers in rows
            ]

        with tracer.start_as_current_span("query.recent_questions") as span:
            span.set_attribute("limit", limit)
            return await self.cache.remember(
                self.recent_questions_policy(limit, ttl), fetch
            )

    async def get_popular_solutions(
        self, limit: int = 10, ttl: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Solutions by like count, then comment count, with their authors."""
        _check_limit(limit)

        async def fetch() -> List[Dict[str, Any]]:
            likes_count = _likes_count(Solution, TARGET_SOLUTION)
            comments_count = _comments_count(Solution, TARGET_SOLUTION)
            stmt = (
                select(Solution, likes_count, comments_count)
                .options(selectinload(Solution.user))
                .where(Solution.deleted_at.is_(None))
                .order_by(
                    likes_count.desc(), comments_count.desc(), Solution.id.desc()
                )
                .limit(limit)
            )
            async with self.database.session() as session:
                rows = (await session.execute(stmt)).all()
            return [
                SolutionResource.from_model(
                    solution,
                    user=UserResource.summary(solution.user),
                    likes_count=likes,
                    comments_count=comments,
                ).to_payload()
                for solution, likes, comments in rows
            ]

        with tracer.start_as_current_span("query.popular_solutions") as span:
            span.set_attribute("limit", limit)
            return await self.cache.remember(
                self.popular_solutions_policy(limit, ttl), fetch
            )

    async def get_user_profile_with_stats(
        self, user_id: int, ttl: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        User with their five latest questions, solutions and answers, plus counts.

        Raises:
            EntityNotFoundException: If the user does not exist (nothing is cached)
        """

        async def fetch() -> Dict[str, Any]:
            async with self.database.session() as session:
                user = await session.get(User, user_id)
                if user is None:
                    raise EntityNotFoundException("User", user_id)

                questions = (
                    await session.execute(
                        select(Question)
                        .where(Question.user_id == user_id, Question.deleted_at.is_(None))
                        .order_by(Question.created_at.desc(), Question.id.desc())
                        .limit(PROFILE_RECENT_ITEMS)
                    )
                ).scalars().all()
                solutions = (
                    await session.execute(
                        select(Solution)
                        .where(Solution.user_id == user_id, Solution.deleted_at.is_(None))
                        .order_by(Solution.created_at.desc(), Solution.id.desc())
                        .limit(PROFILE_RECENT_ITEMS)
                    )
                ).scalars().all()
                answers = (
                    await session.execute(
                        select(Answer)
                        .where(Answer.user_id == user_id)
                        .order_by(Answer.created_at.desc(), Answer.id.desc())
                        .limit(PROFILE_RECENT_ITEMS)
                    )
                ).scalars().all()

                stats = {
                    "questions_count": await self._count(
                        session,
                        select(func.count(Question.id)).where(
                            Question.user_id == user_id, Question.deleted_at.is_(None)
                        ),
                    ),
                    "solutions_count": await self._count(
                        session,
                        select(func.count(Solution.id)).where(
                            Solution.user_id == user_id, Solution.deleted_at.is_(None)
                        ),
                    ),
                    "answers_count": await self._count(
                        session,
                        select(func.count(Answer.id)).where(Answer.user_id == user_id),
                    ),
                    "followers_count": await self._count(
                        session,
                        select(func.count(Follow.id)).where(
                            Follow.following_id == user_id
                        ),
                    ),
                    "following_count": await self._count(
                        session,
                        select(func.count(Follow.id)).where(
                            Follow.follower_id == user_id
                        ),
                    ),
                }

            profile = UserResource.from_model(
                user,
                questions=[QuestionResource.from_model(q) for q in questions],
                solutions=[SolutionResource.from_model(s) for s in solutions],
                answers=[AnswerResource.from_model(a) for a in answers],
            )
            return {"user": profile.to_payload(), "stats": stats}

        with tracer.start_as_current_span("query.user_profile_with_stats") as span:
            span.set_attribute("user_id", user_id)
            return await self.cache.remember(
                self.user_profile_policy(user_id, ttl), fetch
            )

    async def get_trending_tags(
        self, limit: int = 20, ttl: Optional[int] = None
    ) -> Dict[str, int]:
        """Most frequent tags across all questions and solutions."""
        _check_limit(limit)

        async def fetch() -> Dict[str, int]:
            async with self.database.session() as session:
                question_tags = (
                    await session.execute(
                        select(Question.tags)
                        .where(Question.tags.is_not(None), Question.tags != "")
                        .order_by(Question.id)
                    )
                ).scalars().all()
                solution_tags = (
                    await session.execute(
                        select(Solution.tags)
                        .where(Solution.tags.is_not(None), Solution.tags != "")
                        .order_by(Solution.id)
                    )
                ).scalars().all()
            return count_tags([*question_tags, *solution_tags], limit)

        with tracer.start_as_current_span("query.trending_tags") as span:
            span.set_attribute("limit", limit)
            return await self.cache.remember(
                self.trending_tags_policy(limit, ttl), fetch
            )

    # Maintenance

    async def process_in_chunks(
        self,
        model: Type[Base],
        callback: Callable[[Any], Union[Awaitable[None], None]],
        chunk_size: int = 100,
    ) -> int:
        """
        Walk every row of ``model`` in id order, ``chunk_size`` rows per query.

        ``callback`` may be a plain function or a coroutine function.

        Returns:
            Number of rows processed
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

        processed = 0
        last_id = 0
        async with self.database.session() as session:
            while True:
                chunk = (
                    await session.execute(
                        select(model)
                        .where(model.id > last_id)
                        .order_by(model.id)
                        .limit(chunk_size)
                    )
                ).scalars().all()
                if not chunk:
                    break

                for record in chunk:
                    result = callback(record)
                    if inspect.isawaitable(result):
                        await result
                    processed += 1
                last_id = chunk[-1].id

                if len(chunk) < chunk_size:
                    break

        logger.info(
            "Processed records in chunks",
            model=model.__name__,
            processed=processed,
            chunk_size=chunk_size,
        )
        return processed

    async def clear_all_cache(self) -> int:
        """Flush every tag used by the named reads."""
        return await self.cache.invalidate_tags(ALL_QUERY_TAGS)

    async def clear_model_cache(self, model_type: str) -> int:
        """Flush a single tag, e.g. ``questions``."""
        return await self.cache.invalidate_tags([model_type])

    @staticmethod
    async def _count(session, stmt) -> int:
        return (await session.execute(stmt)).scalar_one()
