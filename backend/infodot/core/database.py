"""
InfoDot Database Configuration

Async SQLAlchemy engine and session management:
- Connection probe with exponential backoff retry
- Pool settings for PostgreSQL, single shared connection for SQLite
- Prometheus counters for connection outcomes
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)
import structlog
from prometheus_client import Counter, Histogram

from .config import Settings, get_settings

logger = structlog.get_logger()

db_connection_duration = Histogram(
    "infodot_db_connection_duration_seconds",
    "Time spent establishing database connections",
)
db_failed_connections = Counter(
    "infodot_db_failed_connections_total",
    "Total number of failed database connections",
)


class DatabaseManager:
    """
    Database connection manager.

    Owns the engine and session factory. Sessions are handed out through
    ``session()``; commit is left to repositories so their post-commit
    hooks run only after a successful commit.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    def _engine_kwargs(self) -> dict:
        url = self.settings.database_url
        if url.startswith("sqlite"):
            # In-memory SQLite must reuse one connection or each session sees
            # an empty database.
            return {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
                "echo": self.settings.debug,
            }
        return {
            "pool_size": self.settings.DATABASE_POOL_SIZE,
            "max_overflow": self.settings.DATABASE_MAX_OVERFLOW,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
            "pool_timeout": 30,
            "echo": self.settings.debug,
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((OperationalError, InterfaceError, OSError)),
        before_sleep=lambda retry_state: logger.warning(
            "Database connection retry",
            attempt=retry_state.attempt_number,
            wait_time=retry_state.next_action.sleep,
        ),
        reraise=True,
    )
    async def _create_engine_with_retry(self) -> AsyncEngine:
        """Create database engine and probe it with retry logic."""
        start_time = time.time()

        engine = create_async_engine(self.settings.database_url, **self._engine_kwargs())
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            db_failed_connections.inc()
            await engine.dispose()
            logger.error(
                "Failed to connect to database",
                error=str(e),
                duration_seconds=time.time() - start_time,
            )
            raise

        duration = time.time() - start_time
        db_connection_duration.observe(duration)
        logger.info("Database engine created successfully", duration_seconds=duration)
        return engine

    async def initialize(self) -> None:
        """Create the engine and session factory."""
        if self.engine is not None:
            return

        self.engine = await self._create_engine_with_retry()
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_all(self) -> None:
        """Create all tables known to the model metadata."""
        from ..models import Base

        await self.initialize()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session, rolling back on error."""
        await self.initialize()
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Dispose of the engine and its pool."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database engine disposed")
