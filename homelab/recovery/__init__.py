"""Rollback and error recovery for installation runs."""

from .rollback import RecoveryManager, RollbackAction, RollbackResult, RollbackStatus
from .error_handler import ErrorHandler
from .context import CancellationToken, RunContext

__all__ = [
    "RecoveryManager",
    "RollbackAction",
    "RollbackResult",
    "RollbackStatus",
    "ErrorHandler",
    "CancellationToken",
    "RunContext",
]
