"""
Rollback bookkeeping for a single installation run.

Each reversible side effect registers a RollbackAction the moment it
succeeds. On failure or cancellation the actions run newest first.
"""

import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Union


class RollbackStatus(Enum):
    """Result of running one rollback action."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class RollbackAction:
    """A description plus a zero-argument reversal, sync or async."""
    description: str
    execute: Callable[[], Union[Any, Awaitable[Any]]]


@dataclass
class RollbackResult:
    """Outcome of a single rollback action."""
    description: str
    status: RollbackStatus
    error: Optional[Exception] = None
    duration_seconds: float = 0.0


class RecoveryManager:
    """Ordered list of rollback actions for one run."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._actions: List[RollbackAction] = []

    def register_action(self, action: RollbackAction) -> None:
        """Append an action; it will run before every earlier one."""
        self._actions.append(action)
        self.logger.debug(f"Registered rollback action: {action.description}")

    def has_actions(self) -> bool:
        return bool(self._actions)

    def pending_actions(self) -> List[str]:
        """Descriptions of registered actions in registration order."""
        return [action.description for action in self._actions]

    def clear(self) -> None:
        self._actions.clear()

    async def execute_rollback(self) -> List[RollbackResult]:
        """
        Run every registered action in reverse registration order.

        A failing action is logged and the remaining actions still run. The
        action list is empty afterwards.

        Returns:
            One RollbackResult per action, in execution order
        """
        actions = list(reversed(self._actions))
        results = []

        self.logger.info(f"Executing {len(actions)} rollback action(s)")

        for action in actions:
            start_time = time.time()
            try:
                outcome = action.execute()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                duration = time.time() - start_time
                self.logger.error(
                    f"Rollback action failed: {action.description} - {e}",
                    extra={'rollback_action': action.description, 'error_type': type(e).__name__},
                    exc_info=True
                )
                results.append(RollbackResult(action.description, RollbackStatus.FAILED, e, duration))
                continue

            duration = time.time() - start_time
            self.logger.info(f"Rolled back: {action.description}")
            results.append(RollbackResult(action.description, RollbackStatus.SUCCESS, None, duration))

        self._actions.clear()
        return results
