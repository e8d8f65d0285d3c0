"""
InfoDot Database Models

SQLAlchemy models for users, questions, answers, solutions and their
likes and comments. Models taking part in caching carry the ``Cacheable``
mixin, which names their direct cache key and the tags their writes flush.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ..constants import (
    DURATION_TYPES,
    TAG_POPULAR,
    TAG_QUESTIONS,
    TAG_RECENT,
    TAG_SOLUTIONS,
    TAG_USERS,
    TARGET_ANSWER,
    TARGET_QUESTION,
    TARGET_SOLUTION,
    get_current_timestamp,
)
from ..domain.cache.value_objects import CacheKey, CacheTag


class Base(DeclarativeBase):
    """Canonical Base class for all database models."""

    pass


class TimestampMixin:
    """Mixin for timestamp fields."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=get_current_timestamp,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=get_current_timestamp,
        server_default=func.now(),
        onupdate=get_current_timestamp,
        nullable=False,
    )


class SoftDeleteMixin:
    """Mixin for soft delete functionality."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = get_current_timestamp()


class Cacheable:
    """
    Cache participation for a model.

    ``cache_key()`` is the entity's own key (``Question:7``);
    ``cache_tags()`` are the tags its model is grouped under;
    ``invalidation_tags()`` are flushed after every committed write.
    """

    __cache_tags__: Tuple[str, ...] = ()
    __searchable__: Tuple[str, ...] = ()

    def cache_key(self, suffix: str = "") -> CacheKey:
        return CacheKey.entity(type(self).__name__, self.id, suffix)

    def cache_tags(self) -> Tuple[CacheTag, ...]:
        return CacheTag.of(*(self.__cache_tags__ or (type(self).__name__,)))

    def invalidation_tags(self) -> Tuple[CacheTag, ...]:
        return self.cache_tags()


def _target_list_tags(target_type: str) -> Tuple[CacheTag, ...]:
    """Tags of the listings a like or comment on ``target_type`` shows up in."""
    if target_type == TARGET_SOLUTION:
        return CacheTag.of(TAG_SOLUTIONS, TAG_POPULAR)
    return CacheTag.of(TAG_QUESTIONS, TAG_POPULAR)


class User(Base, TimestampMixin, Cacheable):
    """User account model."""

    __tablename__ = "users"
    __cache_tags__ = (TAG_USERS,)
    __searchable__ = ("name", "email")

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    profile_photo_path: Mapped[Optional[str]] = mapped_column(
        String(2048), nullable=True
    )

    # Relationships
    questions: Mapped[List["Question"]] = relationship(
        "Question", back_populates="user"
    )
    answers: Mapped[List["Answer"]] = relationship("Answer", back_populates="user")
    solutions: Mapped[List["Solution"]] = relationship(
        "Solution", back_populates="user"
    )

    def invalidation_tags(self) -> Tuple[CacheTag, ...]:
        return CacheTag.of(TAG_USERS, CacheTag.user(self.id))

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class Follow(Base, Cacheable):
    """Directed follow edge between two users."""

    __tablename__ = "follows"
    __cache_tags__ = (TAG_USERS,)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    follower_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    following_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=get_current_timestamp,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follow_pair"),
        CheckConstraint("follower_id <> following_id", name="check_no_self_follow"),
    )

    def invalidation_tags(self) -> Tuple[CacheTag, ...]:
        return CacheTag.of(
            CacheTag.user(self.follower_id), CacheTag.user(self.following_id)
        )

    def __repr__(self) -> str:
        return f"<Follow(follower={self.follower_id}, following={self.following_id})>"


class Question(Base, TimestampMixin, SoftDeleteMixin, Cacheable):
    """Question asked by a user."""

    __tablename__ = "questions"
    __cache_tags__ = (TAG_QUESTIONS,)
    __searchable__ = ("question", "description")

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="open")

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="questions")
    answers: Mapped[List["Answer"]] = relationship(
        "Answer",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="Answer.id",
    )

    __table_args__ = (Index("ix_questions_created_at", "created_at"),)

    def invalidation_tags(self) -> Tuple[CacheTag, ...]:
        return CacheTag.of(
            TAG_QUESTIONS, TAG_POPULAR, TAG_RECENT, CacheTag.user(self.user_id)
        )

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, user_id={self.user_id})>"


class Answer(Base, TimestampMixin, Cacheable):
    """Answer posted on a question."""

    __tablename__ = "answers"
    __cache_tags__ = (TAG_QUESTIONS,)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="answers")
    question: Mapped["Question"] = relationship("Question", back_populates="answers")

    def invalidation_tags(self) -> Tuple[CacheTag, ...]:
        return CacheTag.of(
            TAG_QUESTIONS, TAG_POPULAR, TAG_RECENT, CacheTag.user(self.user_id)
        )

    def __repr__(self) -> str:
        return f"<Answer(id={self.id}, question_id={self.question_id}, accepted={self.is_accepted})>"


class Solution(Base, TimestampMixin, SoftDeleteMixin, Cacheable):
    """Multi-step solution written by a user."""

    __tablename__ = "solutions"
    __cache_tags__ = (TAG_SOLUTIONS,)
    __searchable__ = ("solution_title", "solution_description", "tags")

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    solution_title: Mapped[str] = mapped_column(String(255), nullable=False)
    solution_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    steps: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="solutions")
    solution_steps: Mapped[List["Step"]] = relationship(
        "Step",
        back_populates="solution",
        cascade="all, delete-orphan",
        order_by=lambda: (Step.created_at, Step.id),
    )

    __table_args__ = (
        CheckConstraint(
            "duration_type IS NULL OR duration_type IN ({})".format(
                ", ".join(f"'{t}'" for t in DURATION_TYPES)
            ),
            name="check_duration_type",
        ),
    )

    def invalidation_tags(self) -> Tuple[CacheTag, ...]:
        return CacheTag.of(TAG_SOLUTIONS, TAG_POPULAR, CacheTag.user(self.user_id))

    def __repr__(self) -> str:
        return f"<Solution(id={self.id}, title={self.solution_title})>"


class Step(Base, TimestampMixin, Cacheable):
    """Ordered step of a solution."""

    __tablename__ = "steps"
    __cache_tags__ = (TAG_SOLUTIONS,)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    solution_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("solutions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    solution_heading: Mapped[str] = mapped_column(String(255), nullable=False)
    solution_body: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    solution: Mapped["Solution"] = relationship(
        "Solution", back_populates="solution_steps"
    )

    def invalidation_tags(self) -> Tuple[CacheTag, ...]:
        return CacheTag.of(TAG_SOLUTIONS, TAG_POPULAR)

    def __repr__(self) -> str:
        return f"<Step(id={self.id}, solution_id={self.solution_id})>"


class Like(Base, TimestampMixin, Cacheable):
    """Like (``like=True``) or dislike of a question, answer or solution."""

    __tablename__ = "likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    likable_type: Mapped[str] = mapped_column(String(20), nullable=False)
    likable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    like: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    user: Mapped["User"] = relationship("User")

    __table_args__ = (
        UniqueConstraint(
            "user_id", "likable_type", "likable_id", name="uq_like_user_target"
        ),
        Index("ix_likes_target", "likable_type", "likable_id"),
        CheckConstraint(
            f"likable_type IN ('{TARGET_QUESTION}', '{TARGET_ANSWER}', '{TARGET_SOLUTION}')",
            name="check_likable_type",
        ),
    )

    def invalidation_tags(self) -> Tuple[CacheTag, ...]:
        return _target_list_tags(self.likable_type)

    def __repr__(self) -> str:
        return f"<Like(id={self.id}, target={self.likable_type}:{self.likable_id}, like={self.like})>"


class Comment(Base, TimestampMixin, Cacheable):
    """Comment on a question, answer or solution."""

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    commentable_type: Mapped[str] = mapped_column(String(20), nullable=False)
    commentable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped["User"] = relationship("User")

    __table_args__ = (
        Index("ix_comments_target", "commentable_type", "commentable_id"),
        CheckConstraint(
            f"commentable_type IN ('{TARGET_QUESTION}', '{TARGET_ANSWER}', '{TARGET_SOLUTION}')",
            name="check_commentable_type",
        ),
    )

    def invalidation_tags(self) -> Tuple[CacheTag, ...]:
        return _target_list_tags(self.commentable_type)

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, target={self.commentable_type}:{self.commentable_id})>"


TARGET_MODELS = {
    TARGET_QUESTION: Question,
    TARGET_ANSWER: Answer,
    TARGET_SOLUTION: Solution,
}

__all__ = [
    "Base",
    "Cacheable",
    "User",
    "Follow",
    "Question",
    "Answer",
    "Solution",
    "Step",
    "Like",
    "Comment",
    "TARGET_MODELS",
]
