"""
Unit tests for repositories against in-memory SQLite.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from infodot.core.exceptions import EntityNotFoundException, InvalidOperationException
from infodot.models import Question
from infodot.repositories import (
    AnswerRepository,
    BaseRepository,
    CommentRepository,
    LifecycleAction,
    LifecycleHooks,
    QuestionRepository,
    SolutionRepository,
    UserRepository,
)


class TestBaseRepository:
    """Test shared repository behaviour."""

    def test_rejects_non_async_session(self):
        with pytest.raises(TypeError, match="AsyncSession"):
            BaseRepository(MagicMock(), Question)

    async def test_get_or_fail(self, session):
        with pytest.raises(EntityNotFoundException, match="Question 1 not found"):
            await QuestionRepository(session).get_or_fail(1)

    async def test_list_limits(self, session):
        repo = QuestionRepository(session)

        with pytest.raises(ValueError, match="exceed 100"):
            await repo.list(limit=101)
        with pytest.raises(ValueError, match="non-negative"):
            await repo.list(skip=-1)

    async def test_create_type_check(self, session):
        with pytest.raises(TypeError, match="Question instance"):
            await QuestionRepository(session).create(object())

    async def test_update_unknown_field(self, seed, session):
        ada = await seed.user()

        with pytest.raises(ValueError, match="no field 'nickname'"):
            await UserRepository(session).update(ada, nickname="ada")

    async def test_soft_delete_hides_rows(self, seed, database):
        ada = await seed.user()
        question = await seed.question(ada)
        hook = AsyncMock()

        async with database.session() as session:
            repo = QuestionRepository(session, LifecycleHooks(hook))
            await repo.delete(await repo.get(question.id))

            assert await repo.get(question.id) is None
            hidden = await repo.get(question.id, include_deleted=True)
            assert hidden.is_deleted
            assert await repo.list() == []

        hook.assert_awaited_once()
        assert hook.await_args.args[1] is LifecycleAction.DELETED


class TestUserRepository:
    """Test users and follows."""

    async def test_get_by_email(self, seed, session):
        ada = await seed.user()
        repo = UserRepository(session)

        assert (await repo.get_by_email(ada.email)).id == ada.id
        assert await repo.get_by_email("nobody@example.com") is None
        with pytest.raises(ValueError):
            await repo.get_by_email("")

    async def test_follow_is_idempotent(self, seed, session):
        ada = await seed.user()
        bob = await seed.user()
        repo = UserRepository(session)

        first = await repo.follow(bob.id, ada.id)
        second = await repo.follow(bob.id, ada.id)

        assert first.id == second.id
        assert await repo.followers_count(ada.id) == 1
        assert await repo.following_count(bob.id) == 1

        assert await repo.unfollow(bob.id, ada.id) is True
        assert await repo.unfollow(bob.id, ada.id) is False
        assert await repo.followers_count(ada.id) == 0

    async def test_cannot_follow_self(self, seed, session):
        ada = await seed.user()

        with pytest.raises(InvalidOperationException, match="themselves"):
            await UserRepository(session).follow(ada.id, ada.id)

    async def test_follow_refreshes_both_profiles(self, seed, session, hooks, store, queries):
        ada = await seed.user()
        bob = await seed.user()
        await queries.get_user_profile_with_stats(ada.id)
        await queries.get_user_profile_with_stats(bob.id)

        await UserRepository(session, hooks).follow(bob.id, ada.id)

        assert len(store) == 0


class TestQuestionRepositories:
    """Test question and answer repositories."""

    async def test_ask_requires_author(self, session):
        with pytest.raises(EntityNotFoundException, match="User 5"):
            await QuestionRepository(session).ask(5, "Orphan?")

    async def test_answers_loaded_in_order(self, seed, session):
        ada = await seed.user()
        question = await seed.question(ada)
        first = await seed.answer(ada, question, "one")
        second = await seed.answer(ada, question, "two")

        loaded = await QuestionRepository(session).get_with_answers(question.id)

        assert [a.id for a in loaded.answers] == [first.id, second.id]
        assert loaded.answers[0].user.id == ada.id

    async def test_cannot_answer_deleted_question(self, seed, database):
        ada = await seed.user()
        question = await seed.question(ada)

        async with database.session() as session:
            repo = QuestionRepository(session)
            await repo.delete(await repo.get(question.id))

        async with database.session() as session:
            with pytest.raises(EntityNotFoundException, match="Question"):
                await AnswerRepository(session).post(ada.id, question.id, "late")


class TestSolutionRepository:
    """Test solutions and steps."""

    async def test_publish_with_steps(self, seed, session):
        ada = await seed.user()
        solution = await seed.solution(
            ada,
            "Setup",
            steps=[{"heading": "Install", "body": "pip"}, {"heading": "Run", "body": "go"}],
        )

        loaded = await SolutionRepository(session).get_with_steps(solution.id)

        assert loaded.steps == 2
        assert [s.solution_heading for s in loaded.solution_steps] == ["Install", "Run"]

    async def test_unknown_duration_type(self, seed, session):
        ada = await seed.user()

        with pytest.raises(InvalidOperationException, match="duration type"):
            await SolutionRepository(session).publish(
                ada.id, "Slow", duration=1, duration_type="fortnights"
            )


class TestCommentRepository:
    """Test comment listing."""

    async def test_for_target_oldest_first(self, seed, interactions, session):
        ada = await seed.user("Ada")
        question = await seed.question(ada)
        await interactions.add_comment(ada.id, "question", question.id, "first")
        await interactions.add_comment(ada.id, "question", question.id, "second")

        comments = await CommentRepository(session).for_target("question", question.id)

        assert [c.body for c in comments] == ["first", "second"]
        assert comments[0].user.name == "Ada"
