"""
Unit tests for SearchService.
"""

import pytest

from infodot.models import Comment, Question, Solution
from infodot.repositories import QuestionRepository
from infodot.services.search import search_words


class TestSearchWords:
    """Test term cleaning."""

    def test_strips_reserved_symbols(self):
        assert search_words("+redis -cache (tags) ~x") == ["redis", "cache", "tags", "x"]

    def test_empty(self):
        assert search_words("") == []
        assert search_words("  -+ ") == []
        assert search_words(None) == []


class TestSearchService:
    """Test searches against SQLite."""

    async def test_every_word_must_match(self, search_service, seed):
        ada = await seed.user()
        both = await seed.question(ada, "Redis cache keys")
        await seed.question(ada, "Redis streams")

        results = await search_service.search(Question, "redis CACHE")

        assert [q.id for q in results] == [both.id]

    async def test_words_may_match_different_columns(self, search_service, seed):
        ada = await seed.user()
        # description is "About Tuning"
        tuned = await seed.question(ada, "Tuning")

        results = await search_service.search(Question, "about tuning")

        assert [q.id for q in results] == [tuned.id]

    async def test_newest_first_with_limit(self, search_service, seed):
        ada = await seed.user()
        await seed.question(ada, "Topic one")
        second = await seed.question(ada, "Topic two")

        results = await search_service.search(Question, "topic", limit=1)

        assert [q.id for q in results] == [second.id]

    async def test_like_wildcards_are_literal(self, search_service, seed):
        ada = await seed.user()
        await seed.question(ada, "Plain words")

        assert await search_service.search(Question, "%") == []
        assert await search_service.search(Question, "_") == []

    async def test_soft_deleted_excluded(self, search_service, seed, database, hooks):
        ada = await seed.user()
        question = await seed.question(ada, "Vanishing")

        async with database.session() as session:
            repo = QuestionRepository(session, hooks)
            await repo.delete(await repo.get(question.id))

        assert await search_service.search(Question, "vanishing") == []

    async def test_empty_term(self, search_service):
        assert await search_service.search(Question, "()") == []

    async def test_model_without_searchable_columns(self, search_service):
        with pytest.raises(ValueError, match="no searchable columns"):
            await search_service.search(Comment, "x")

    async def test_solution_tags_are_searchable(self, search_service, seed):
        ada = await seed.user()
        solution = await seed.solution(ada, "Deploy", tags="kubernetes, helm")

        results = await search_service.search(Solution, "helm")

        assert [s.id for s in results] == [solution.id]

    async def test_search_all_payloads(self, search_service, seed):
        ada = await seed.user("Ada")
        await seed.question(ada, "Async python")
        await seed.solution(ada, "Python packaging")

        results = await search_service.search_all("python")

        assert [q["question"] for q in results["questions"]] == ["Async python"]
        assert [s["solution_title"] for s in results["solutions"]] == ["Python packaging"]
        assert results["questions"][0]["user"]["name"] == "Ada"

    async def test_search_users(self, search_service, seed):
        await seed.user("Grace Hopper")
        await seed.user("Alan")

        users = await search_service.search_users("hopper")

        assert [u["name"] for u in users] == ["Grace Hopper"]
        assert "email" not in users[0]
