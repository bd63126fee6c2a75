"""
Per-run state shared along the orchestration call chain.
"""

import asyncio
import signal
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..utils.logging import get_logger
from .error_handler import ErrorHandler
from .rollback import RecoveryManager

logger = get_logger(__name__)


class CancellationToken:
    """Cooperative cancellation flag, polled between installation steps."""

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None
        self._signals: List[signal.Signals] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "cancelled by user") -> None:
        if not self._cancelled:
            logger.warning(f"Cancellation requested: {reason}")
        self._cancelled = True
        self.reason = reason

    def install_signal_handlers(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        signals: Sequence[signal.Signals] = (signal.SIGINT, signal.SIGTERM)
    ) -> bool:
        """Route interrupt signals to ``cancel``.

        Returns:
            True if handlers were installed
        """
        try:
            loop = loop or asyncio.get_running_loop()
            for sig in signals:
                loop.add_signal_handler(sig, self.cancel, f"received {sig.name}")
                self._signals.append(sig)
            logger.debug(f"Signal handlers installed for {', '.join(s.name for s in signals)}")
            return True
        except (NotImplementedError, RuntimeError) as e:
            # Not supported on this platform or outside the main thread
            logger.debug(f"Could not install signal handlers: {e}")
            return False

    def remove_signal_handlers(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if not self._signals:
            return
        loop = loop or asyncio.get_running_loop()
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals.clear()


@dataclass
class RunContext:
    """Exactly one recovery manager, error handler and cancellation flag per run."""
    recovery_manager: RecoveryManager
    error_handler: ErrorHandler
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    run_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    @classmethod
    def create(cls, run_id: Optional[str] = None) -> "RunContext":
        recovery_manager = RecoveryManager()
        context = cls(
            recovery_manager=recovery_manager,
            error_handler=ErrorHandler(recovery_manager)
        )
        if run_id:
            context.run_id = run_id
        return context
