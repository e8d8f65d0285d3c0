"""
Unit tests for resource projections.
"""

from datetime import datetime, timezone

from infodot.models import Answer, Question, Solution, Step, User
from infodot.resources import (
    AnswerResource,
    QuestionResource,
    SolutionResource,
    StepResource,
    UserResource,
)

CREATED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_user(**overrides):
    fields = dict(id=1, name="Ada Lovelace", email="ada@example.com", created_at=CREATED_AT)
    fields.update(overrides)
    return User(**fields)


class TestUserResource:
    """Test user projections."""

    def test_default_avatar(self):
        summary = UserResource.summary(make_user())

        assert summary.to_payload() == {
            "id": 1,
            "name": "Ada Lovelace",
            "profile_photo_url": (
                "https://ui-avatars.com/api/?name=Ada%20Lovelace"
                "&color=7F9CF5&background=EBF4FF"
            ),
        }

    def test_stored_photo(self):
        user = make_user(profile_photo_path="photos/ada.png")

        assert UserResource.photo_url(user) == "/storage/photos/ada.png"

    def test_full_profile_with_counts(self):
        resource = UserResource.from_model(
            make_user(), questions=[], followers_count=3
        )
        payload = resource.to_payload()

        assert payload["email"] == "ada@example.com"
        assert payload["created_at"] == "2024-05-01T12:00:00Z"
        assert payload["questions"] == []
        assert payload["followers_count"] == 3
        assert "solutions" not in payload
        assert "following_count" not in payload


class TestQuestionResource:
    """Test question projections."""

    def test_counts_only_when_supplied(self):
        question = Question(
            id=7, user_id=1, question="Why?", tags="go", status="open", created_at=CREATED_AT
        )

        bare = QuestionResource.from_model(question).to_payload()
        counted = QuestionResource.from_model(question, answers_count=2).to_payload()

        assert "answers_count" not in bare
        assert "user" not in bare
        assert counted["answers_count"] == 2

    def test_nested_answers(self):
        question = Question(id=7, user_id=1, question="Why?")
        answer = Answer(id=3, user_id=1, question_id=7, content="This", is_accepted=True)

        payload = QuestionResource.from_model(
            question,
            user=UserResource.summary(make_user()),
            answers=[AnswerResource.from_model(answer)],
        ).to_payload()

        assert payload["user"]["id"] == 1
        assert payload["answers"][0]["is_accepted"] is True


class TestSolutionResource:
    """Test solution projections."""

    def test_with_steps(self):
        solution = Solution(
            id=2, user_id=1, solution_title="Fix", duration=3, duration_type="days", steps=1
        )
        step = Step(id=9, user_id=1, solution_id=2, solution_heading="h", solution_body="b")

        payload = SolutionResource.from_model(
            solution, solution_steps=[StepResource.from_model(step)], likes_count=0
        ).to_payload()

        assert payload["duration_type"] == "days"
        assert payload["solution_steps"][0]["solution_heading"] == "h"
        assert payload["likes_count"] == 0
