"""
Solution Repository

Solutions and their ordered steps.
"""

from typing import Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from ..constants import DURATION_TYPES
from ..core.exceptions import InvalidOperationException
from ..models import Solution, Step
from .base import BaseRepository
from .hooks import LifecycleAction, LifecycleHooks

logger = structlog.get_logger()


class SolutionRepository(BaseRepository):
    """Solutions, soft-deleted by ``delete``. Steps are written with their solution."""

    def __init__(self, session: AsyncSession, hooks: Optional[LifecycleHooks] = None):
        super().__init__(session, Solution, hooks)

    async def publish(
        self,
        user_id: int,
        title: str,
        description: Optional[str] = None,
        tags: Optional[str] = None,
        duration: Optional[int] = None,
        duration_type: Optional[str] = None,
        steps: Iterable[Mapping[str, str]] = (),
    ) -> Solution:
        """
        Create a solution with its steps in one commit.

        Args:
            steps: Mappings with ``heading`` and ``body``

        Raises:
            InvalidOperationException: If ``duration_type`` is not a known unit
        """
        if duration_type is not None and duration_type not in DURATION_TYPES:
            raise InvalidOperationException(
                f"Unknown duration type '{duration_type}'",
                allowed=list(DURATION_TYPES),
            )

        solution = Solution(
            user_id=user_id,
            solution_title=title,
            solution_description=description,
            tags=tags,
            duration=duration,
            duration_type=duration_type,
        )
        step_rows = [
            Step(
                user_id=user_id,
                solution_heading=step["heading"],
                solution_body=step["body"],
            )
            for step in steps
        ]
        solution.solution_steps = step_rows
        solution.steps = len(step_rows)
        return await self.create(solution)

    async def add_step(self, solution: Solution, heading: str, body: str) -> Step:
        """Append a step and bump the solution's step count."""
        step = Step(
            user_id=solution.user_id,
            solution_id=solution.id,
            solution_heading=heading,
            solution_body=body,
        )
        self.session.add(step)
        solution.steps = (solution.steps or 0) + 1
        self.session.add(solution)
        await self._commit(step, "add step")

        logger.info(
            "SolutionRepository: Step added",
            solution_id=solution.id,
            step_id=step.id,
        )
        await self.hooks.run(step, LifecycleAction.CREATED)
        return step

    async def get_with_steps(self, solution_id: int) -> Optional[Solution]:
        stmt = (
            select(Solution)
            .options(selectinload(Solution.user), selectinload(Solution.solution_steps))
            .where(Solution.id == solution_id, Solution.deleted_at.is_(None))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
