"""
Top-level error dispatch for installation runs.
"""

from typing import List, Optional

from ..exceptions import ErrorCode, HomelabError
from ..utils.logging import get_logger
from .rollback import RecoveryManager, RollbackResult, RollbackStatus

logger = get_logger(__name__)


class ErrorHandler:
    """Classifies failures and drives the recovery manager.

    ``unwind`` is the only routine that triggers a rollback; both the
    failure path (``graceful_shutdown``) and cancellation go through it.
    """

    def __init__(self, recovery_manager: RecoveryManager):
        self.recovery_manager = recovery_manager

    @staticmethod
    def classify(error: BaseException) -> Optional[ErrorCode]:
        """Return the error code for installer errors, None for anything else."""
        if isinstance(error, HomelabError):
            return error.error_code
        return None

    def handle_error(self, error: BaseException) -> Optional[ErrorCode]:
        """Classify and log an error. Never changes run state."""
        code = self.classify(error)

        if code is None:
            logger.error(
                f"Unexpected error: {type(error).__name__}: {error}",
                exc_info=(type(error), error, error.__traceback__)
            )
            return None

        report = error.to_dict()
        logger.error(
            f"[{code.value}] {error.message}",
            extra={'error_code': code.value, 'error_details': report["details"]}
        )
        return code

    async def unwind(self, reason: str = "failure") -> List[RollbackResult]:
        """Roll back every completed step, newest first."""
        if not self.recovery_manager.has_actions():
            logger.info(f"Nothing to roll back after {reason}")
            return []

        pending = self.recovery_manager.pending_actions()
        logger.warning(
            f"Rolling back {len(pending)} completed step(s) after {reason}",
            extra={'pending_actions': pending}
        )

        results = await self.recovery_manager.execute_rollback()

        failed = [r.description for r in results if r.status == RollbackStatus.FAILED]
        if failed:
            logger.error(f"Rollback finished with {len(failed)} failed action(s): {', '.join(failed)}")
        else:
            logger.info("Rollback completed")
        return results

    async def graceful_shutdown(self, error: Optional[BaseException] = None, exit_code: int = 1) -> None:
        """
        Unwind pending actions, then exit the process.

        Raises:
            SystemExit: Always, with the given exit code
        """
        if error is not None:
            logger.error(f"Shutting down after error: {error}")

        await self.unwind(reason="error" if error is not None else "shutdown")
        raise SystemExit(exit_code)
