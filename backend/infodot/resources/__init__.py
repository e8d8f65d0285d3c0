"""
Public Resource Projections

Pydantic schemas for the public view of each entity. They are built from
ORM rows with relations and counts passed in explicitly, so building one
never triggers a lazy load. ``to_payload()`` gives the JSON-safe dict that
is cached and broadcast; fields that were not supplied are left out.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field


def _present(**fields: Any) -> Dict[str, Any]:
    return {name: value for name, value in fields.items() if value is not None}


class Resource(BaseModel):
    """Base class for resource projections."""

    model_config = ConfigDict(from_attributes=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class StepResource(Resource):
    """Schema for solution steps."""

    id: int
    solution_heading: str
    solution_body: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, step) -> "StepResource":
        return cls(
            id=step.id,
            solution_heading=step.solution_heading,
            solution_body=step.solution_body,
            created_at=step.created_at,
        )


class UserResource(Resource):
    """Schema for user profiles and embedded authors."""

    id: int
    name: str
    email: Optional[str] = None
    profile_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    questions: Optional[List["QuestionResource"]] = None
    solutions: Optional[List["SolutionResource"]] = None
    answers: Optional[List["AnswerResource"]] = None

    questions_count: Optional[int] = Field(None, ge=0)
    solutions_count: Optional[int] = Field(None, ge=0)
    answers_count: Optional[int] = Field(None, ge=0)
    followers_count: Optional[int] = Field(None, ge=0)
    following_count: Optional[int] = Field(None, ge=0)

    @staticmethod
    def photo_url(user) -> str:
        if user.profile_photo_path:
            return f"/storage/{user.profile_photo_path}"
        return (
            f"https://ui-avatars.com/api/?name={quote(user.name)}"
            "&color=7F9CF5&background=EBF4FF"
        )

    @classmethod
    def summary(cls, user) -> "UserResource":
        """Author projection embedded in listings: id, name and photo."""
        return cls(id=user.id, name=user.name, profile_photo_url=cls.photo_url(user))

    @classmethod
    def from_model(
        cls,
        user,
        questions: Optional[List["QuestionResource"]] = None,
        solutions: Optional[List["SolutionResource"]] = None,
        answers: Optional[List["AnswerResource"]] = None,
        **counts: int,
    ) -> "UserResource":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            profile_photo_url=cls.photo_url(user),
            created_at=user.created_at,
            updated_at=user.updated_at,
            **_present(questions=questions, solutions=solutions, answers=answers),
            **counts,
        )


class CommentResource(Resource):
    """Schema for comments."""

    id: int
    body: str
    commentable_type: str
    commentable_id: int
    created_at: Optional[datetime] = None
    user: Optional[UserResource] = None

    @classmethod
    def from_model(cls, comment, user: Optional[UserResource] = None) -> "CommentResource":
        return cls(
            id=comment.id,
            body=comment.body,
            commentable_type=comment.commentable_type,
            commentable_id=comment.commentable_id,
            created_at=comment.created_at,
            **_present(user=user),
        )


class AnswerResource(Resource):
    """Schema for answers."""

    id: int
    content: str
    question_id: int
    is_accepted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    user: Optional[UserResource] = None

    likes_count: Optional[int] = Field(None, ge=0)
    dislikes_count: Optional[int] = Field(None, ge=0)
    comments_count: Optional[int] = Field(None, ge=0)

    @classmethod
    def from_model(
        cls, answer, user: Optional[UserResource] = None, **counts: int
    ) -> "AnswerResource":
        return cls(
            id=answer.id,
            content=answer.content,
            question_id=answer.question_id,
            is_accepted=bool(answer.is_accepted),
            created_at=answer.created_at,
            updated_at=answer.updated_at,
            **_present(user=user),
            **counts,
        )


class QuestionResource(Resource):
    """Schema for questions."""

    id: int
    question: str
    description: Optional[str] = None
    tags: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    user: Optional[UserResource] = None
    answers: Optional[List[AnswerResource]] = None

    answers_count: Optional[int] = Field(None, ge=0)
    likes_count: Optional[int] = Field(None, ge=0)
    dislikes_count: Optional[int] = Field(None, ge=0)
    comments_count: Optional[int] = Field(None, ge=0)

    @classmethod
    def from_model(
        cls,
        question,
        user: Optional[UserResource] = None,
        answers: Optional[List[AnswerResource]] = None,
        **counts: int,
    ) -> "QuestionResource":
        return cls(
            id=question.id,
            question=question.question,
            description=question.description,
            tags=question.tags,
            status=question.status,
            created_at=question.created_at,
            updated_at=question.updated_at,
            **_present(user=user, answers=answers),
            **counts,
        )


class SolutionResource(Resource):
    """Schema for solutions."""

    id: int
    solution_title: str
    solution_description: Optional[str] = None
    tags: Optional[str] = None
    duration: Optional[int] = None
    duration_type: Optional[str] = None
    steps: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    user: Optional[UserResource] = None
    solution_steps: Optional[List[StepResource]] = None

    steps_count: Optional[int] = Field(None, ge=0)
    likes_count: Optional[int] = Field(None, ge=0)
    dislikes_count: Optional[int] = Field(None, ge=0)
    comments_count: Optional[int] = Field(None, ge=0)

    @classmethod
    def from_model(
        cls,
        solution,
        user: Optional[UserResource] = None,
        solution_steps: Optional[List[StepResource]] = None,
        **counts: int,
    ) -> "SolutionResource":
        return cls(
            id=solution.id,
            solution_title=solution.solution_title,
            solution_description=solution.solution_description,
            tags=solution.tags,
            duration=solution.duration,
            duration_type=solution.duration_type,
            steps=solution.steps,
            created_at=solution.created_at,
            updated_at=solution.updated_at,
            **_present(user=user, solution_steps=solution_steps),
            **counts,
        )


UserResource.model_rebuild()

__all__ = [
    "AnswerResource",
    "CommentResource",
    "QuestionResource",
    "Resource",
    "SolutionResource",
    "StepResource",
    "UserResource",
]
