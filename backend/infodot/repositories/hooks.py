"""
Post-Commit Lifecycle Hooks

Repositories call ``LifecycleHooks.run`` after a write has been committed.
Hooks are plain async callables registered explicitly at wiring time, so
everything a write triggers is visible from the repository's constructor.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, List

import structlog

logger = structlog.get_logger()


class LifecycleAction(str, Enum):
    """Committed write kinds."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


PostCommitHook = Callable[[Any, LifecycleAction], Awaitable[None]]


class LifecycleHooks:
    """Ordered registry of post-commit hooks."""

    def __init__(self, *hooks: PostCommitHook):
        self._hooks: List[PostCommitHook] = list(hooks)

    def register(self, hook: PostCommitHook) -> PostCommitHook:
        self._hooks.append(hook)
        return hook

    def __len__(self) -> int:
        return len(self._hooks)

    async def run(self, entity: Any, action: LifecycleAction) -> None:
        """Run every hook in registration order.

        Hooks contain their own expected failures; anything else propagates.
        The commit has already happened either way.
        """
        for hook in self._hooks:
            await hook(entity, action)

        logger.debug(
            "Lifecycle hooks completed",
            entity=type(entity).__name__,
            entity_id=getattr(entity, "id", None),
            action=action.value,
            hooks=len(self._hooks),
        )
