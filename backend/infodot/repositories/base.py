"""
Base Repository with Post-Commit Hooks

Every write commits its own unit of work and then runs the registered
lifecycle hooks. Hooks never run for a write that failed to commit.
"""

from typing import Any, Optional, Type

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ..core.exceptions import EntityNotFoundException
from ..models import Base
from .hooks import LifecycleAction, LifecycleHooks

logger = structlog.get_logger()


class BaseRepository:
    """
    Base repository for one model.

    Each repository subclass specifies its model type directly. Soft-deletable
    models (those with ``deleted_at``) are hidden from reads unless asked for
    and are soft-deleted by ``delete``.
    """

    def __init__(
        self,
        session: AsyncSession,
        model: Type[Base],
        hooks: Optional[LifecycleHooks] = None,
    ):
        """
        Initialize repository with input validation.

        Args:
            session: AsyncSession for database operations
            model: SQLAlchemy model class
            hooks: Post-commit hooks run after each committed write

        Raises:
            TypeError: If session is not AsyncSession or model is invalid
        """
        if not isinstance(session, AsyncSession):
            raise TypeError(
                f"session must be AsyncSession instance, got {type(session).__name__}"
            )

        if not model or not hasattr(model, "__tablename__"):
            raise TypeError(
                f"model must be valid SQLAlchemy model with __tablename__, got {type(model).__name__}"
            )

        self.session = session
        self.model = model
        self.hooks = hooks or LifecycleHooks()

    # Relationships CREATED hooks read; loaded after commit when not attached.
    load_on_create: tuple = ()

    async def _load_relationships(self, obj: Base) -> None:
        unloaded = [name for name in self.load_on_create if name in inspect(obj).unloaded]
        if unloaded:
            await self.session.refresh(obj, attribute_names=unloaded)

    @property
    def soft_deletes(self) -> bool:
        return hasattr(self.model, "deleted_at")

    def _visible(self, stmt, include_deleted: bool = False):
        if self.soft_deletes and not include_deleted:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return stmt

    async def get(self, id: int, include_deleted: bool = False) -> Optional[Base]:
        """
        Get entity by ID.

        Args:
            id: Entity id (REQUIRED)
            include_deleted: Also return soft-deleted rows

        Returns:
            Entity if found, None otherwise
        """
        if id is None:
            raise ValueError("Entity id is required (cannot be None)")

        stmt = self._visible(select(self.model).where(self.model.id == id), include_deleted)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_fail(self, id: int) -> Base:
        """Get entity by ID or raise ``EntityNotFoundException``."""
        entity = await self.get(id)
        if entity is None:
            raise EntityNotFoundException(self.model.__name__, id)
        return entity

    async def list(self, skip: int = 0, limit: int = 100) -> list[Base]:
        """
        List entities in id order.

        Args:
            skip: Number of records to skip (pagination)
            limit: Maximum records to return (max 100)
        """
        if limit > 100:
            raise ValueError("limit cannot exceed 100")
        if skip < 0:
            raise ValueError("skip must be non-negative")

        stmt = self._visible(
            select(self.model).order_by(self.model.id).offset(skip).limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, obj: Base) -> Base:
        """
        Persist a new entity and run CREATED hooks.

        Raises:
            ValueError: If obj is None
            TypeError: If obj is not an instance of this repository's model
        """
        if obj is None:
            raise ValueError("Entity object is required (cannot be None)")

        if not isinstance(obj, self.model):
            raise TypeError(
                f"Entity must be {self.model.__name__} instance, got {type(obj).__name__}"
            )

        self.session.add(obj)
        await self._commit(obj, "create")
        await self._load_relationships(obj)

        logger.info(
            "Repository: Entity created",
            model=self.model.__name__,
            entity_id=obj.id,
        )
        await self.hooks.run(obj, LifecycleAction.CREATED)
        return obj

    async def update(self, obj: Base, **changes: Any) -> Base:
        """
        Apply ``changes`` to a persisted entity, commit, and run UPDATED hooks.

        Raises:
            ValueError: If obj has no id or a change names an unknown column
        """
        if obj is None or getattr(obj, "id", None) is None:
            raise ValueError("Entity must have id set (cannot be None)")

        for field, value in changes.items():
            if not hasattr(self.model, field):
                raise ValueError(f"{self.model.__name__} has no field '{field}'")
            setattr(obj, field, value)

        self.session.add(obj)
        await self._commit(obj, "update")

        logger.info(
            "Repository: Entity updated",
            model=self.model.__name__,
            entity_id=obj.id,
            fields=sorted(changes),
        )
        await self.hooks.run(obj, LifecycleAction.UPDATED)
        return obj

    async def delete(self, obj: Base) -> None:
        """Soft delete when the model supports it, otherwise delete the row."""
        if obj is None or getattr(obj, "id", None) is None:
            raise ValueError("Entity must have id set (cannot be None)")

        if self.soft_deletes:
            obj.soft_delete()
            self.session.add(obj)
        else:
            await self.session.delete(obj)
        await self._commit(obj, "delete")

        logger.info(
            "Repository: Entity deleted",
            model=self.model.__name__,
            entity_id=obj.id,
            soft=self.soft_deletes,
        )
        await self.hooks.run(obj, LifecycleAction.DELETED)

    async def _commit(self, obj: Base, operation: str) -> None:
        try:
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(
                f"Repository: Failed to {operation} entity",
                model=self.model.__name__,
                entity_id=getattr(obj, "id", None),
                error=str(e),
                exc_info=True,
            )
            raise
