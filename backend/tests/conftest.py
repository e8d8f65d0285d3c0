"""
Main pytest configuration for all backend tests.

Fixtures for an in-memory cache with a controllable clock, an in-memory
SQLite database, recording broadcast backend and the wired services.
"""

import os

import pytest

# Set test environment variables before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "DEBUG"

from infodot.core.config import Settings, get_settings
from infodot.core.database import DatabaseManager
from infodot.infrastructure.cache.memory_store import InMemoryCacheStore
from infodot.models import Answer, Question, Solution, User
from infodot.repositories import (
    AnswerRepository,
    LifecycleHooks,
    QuestionRepository,
    SolutionRepository,
    UserRepository,
)
from infodot.services.broadcasting import (
    BroadcastHook,
    Broadcaster,
    InMemoryBroadcastBackend,
)
from infodot.services.cache import CacheAside, CacheInvalidationHook
from infodot.services.interactions import InteractionService
from infodot.services.query_optimization import QueryOptimizationService
from infodot.services.search import SearchService

get_settings.cache_clear()


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings():
    """Test settings on an in-memory SQLite database."""
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        CACHE_ENABLED=True,
        CACHE_SINGLE_FLIGHT=False,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def cache(store):
    return CacheAside(store)


@pytest.fixture
def broadcast_backend():
    return InMemoryBroadcastBackend()


@pytest.fixture
def broadcaster(broadcast_backend):
    return Broadcaster(broadcast_backend, channel_prefix="private-")


@pytest.fixture
def hooks(cache, broadcaster):
    return LifecycleHooks(CacheInvalidationHook(cache), BroadcastHook(broadcaster))


@pytest.fixture
async def database(settings):
    """Fresh in-memory schema per test."""
    manager = DatabaseManager(settings)
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
async def session(database):
    async with database.session() as db_session:
        yield db_session


@pytest.fixture
def queries(cache, database, settings):
    return QueryOptimizationService(cache, database, settings)


@pytest.fixture
def search_service(database):
    return SearchService(database)


@pytest.fixture
def interactions(database, hooks):
    return InteractionService(database, hooks)


class Seeder:
    """Creates rows through repositories so hooks run as in production."""

    def __init__(self, database: DatabaseManager, hooks: LifecycleHooks):
        self.database = database
        self.hooks = hooks
        self._emails = 0

    async def user(self, name: str = "Ada") -> User:
        self._emails += 1
        async with self.database.session() as session:
            return await UserRepository(session, self.hooks).register(
                name=name, email=f"user{self._emails}@example.com"
            )

    async def question(self, user: User, text: str = "How?", tags=None) -> Question:
        async with self.database.session() as session:
            return await QuestionRepository(session, self.hooks).ask(
                user.id, text, description=f"About {text}", tags=tags
            )

    async def answer(self, user: User, question: Question, content: str = "Like this") -> Answer:
        async with self.database.session() as session:
            return await AnswerRepository(session, self.hooks).post(
                user.id, question.id, content
            )

    async def solution(self, user: User, title: str = "Do it", tags=None, steps=()) -> Solution:
        async with self.database.session() as session:
            return await SolutionRepository(session, self.hooks).publish(
                user.id, title, description=f"About {title}", tags=tags, steps=steps
            )


@pytest.fixture
def seed(database, hooks):
    return Seeder(database, hooks)
