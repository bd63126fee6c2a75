"""
Tests for rollback bookkeeping, error dispatch and cancellation.
"""

import asyncio
import signal

import pytest
from unittest.mock import AsyncMock, MagicMock

from homelab.exceptions import ErrorCode, ServiceInstallationError, TemplateError
from homelab.recovery import (
    CancellationToken,
    ErrorHandler,
    RecoveryManager,
    RollbackAction,
    RollbackStatus,
    RunContext,
)


@pytest.fixture
def recovery_manager():
    return RecoveryManager()


@pytest.fixture
def error_handler(recovery_manager):
    return ErrorHandler(recovery_manager)


@pytest.mark.unit
class TestRecoveryManager:
    """Test rollback action ordering and failure isolation."""

    @pytest.mark.asyncio
    async def test_actions_run_in_reverse_order(self, recovery_manager):
        executed = []

        for name in ("A", "B", "C"):
            recovery_manager.register_action(RollbackAction(name, lambda name=name: executed.append(name)))

        results = await recovery_manager.execute_rollback()

        assert executed == ["C", "B", "A"]
        assert [r.description for r in results] == ["C", "B", "A"]
        assert all(r.status == RollbackStatus.SUCCESS for r in results)

    @pytest.mark.asyncio
    async def test_async_actions_are_awaited(self, recovery_manager):
        action = AsyncMock()
        recovery_manager.register_action(RollbackAction("Remove Redis", action))

        await recovery_manager.execute_rollback()

        action.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_action_does_not_stop_rollback(self, recovery_manager):
        executed = []

        def broken():
            raise RuntimeError("container busy")

        recovery_manager.register_action(RollbackAction("A", lambda: executed.append("A")))
        recovery_manager.register_action(RollbackAction("B", broken))
        recovery_manager.register_action(RollbackAction("C", lambda: executed.append("C")))

        results = await recovery_manager.execute_rollback()

        assert executed == ["C", "A"]
        assert results[1].status == RollbackStatus.FAILED
        assert isinstance(results[1].error, RuntimeError)
        assert results[0].status == RollbackStatus.SUCCESS
        assert results[2].status == RollbackStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_actions_cleared_after_rollback(self, recovery_manager):
        action = MagicMock()
        recovery_manager.register_action(RollbackAction("A", action))

        await recovery_manager.execute_rollback()
        second = await recovery_manager.execute_rollback()

        assert not recovery_manager.has_actions()
        assert second == []
        action.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_rollback(self, recovery_manager):
        assert await recovery_manager.execute_rollback() == []

    def test_pending_actions_in_registration_order(self, recovery_manager):
        recovery_manager.register_action(RollbackAction("Remove Caddy", MagicMock()))
        recovery_manager.register_action(RollbackAction("Remove Portainer", MagicMock()))

        assert recovery_manager.pending_actions() == ["Remove Caddy", "Remove Portainer"]

    def test_clear(self, recovery_manager):
        recovery_manager.register_action(RollbackAction("A", MagicMock()))

        recovery_manager.clear()

        assert not recovery_manager.has_actions()


@pytest.mark.unit
class TestErrorHandler:
    """Test classification, logging and the unwind routine."""

    def test_classify_installer_errors(self):
        assert ErrorHandler.classify(TemplateError("t", "bad")) == ErrorCode.TEMPLATE_ERROR
        assert ErrorHandler.classify(
            ServiceInstallationError("caddy", "failed")
        ) == ErrorCode.SERVICE_INSTALLATION_ERROR

    def test_classify_foreign_errors(self):
        assert ErrorHandler.classify(KeyError("x")) is None

    def test_handle_error_logs_code(self, error_handler, caplog):
        error = ServiceInstallationError("postgresql", "database_password is required but not provided")

        with caplog.at_level("ERROR"):
            code = error_handler.handle_error(error)

        assert code == ErrorCode.SERVICE_INSTALLATION_ERROR
        assert "[SERVICE_INSTALLATION_ERROR]" in caplog.text
        assert "postgresql" in caplog.text

    def test_handle_error_does_not_roll_back(self, error_handler, recovery_manager):
        recovery_manager.register_action(RollbackAction("A", MagicMock()))

        error_handler.handle_error(RuntimeError("boom"))

        assert recovery_manager.has_actions()

    @pytest.mark.asyncio
    async def test_unwind_runs_rollback(self, error_handler, recovery_manager):
        executed = []
        recovery_manager.register_action(RollbackAction("A", lambda: executed.append("A")))
        recovery_manager.register_action(RollbackAction("B", lambda: executed.append("B")))

        results = await error_handler.unwind(reason="cancellation")

        assert executed == ["B", "A"]
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_unwind_with_nothing_registered(self, error_handler):
        assert await error_handler.unwind() == []

    @pytest.mark.asyncio
    async def test_graceful_shutdown_unwinds_then_exits(self, error_handler, recovery_manager):
        action = MagicMock()
        recovery_manager.register_action(RollbackAction("Remove Caddy", action))

        with pytest.raises(SystemExit) as exc_info:
            await error_handler.graceful_shutdown(RuntimeError("boom"))

        assert exc_info.value.code == 1
        action.assert_called_once()

    @pytest.mark.asyncio
    async def test_graceful_shutdown_exit_code(self, error_handler):
        with pytest.raises(SystemExit) as exc_info:
            await error_handler.graceful_shutdown(exit_code=3)

        assert exc_info.value.code == 3


@pytest.mark.unit
class TestCancellation:
    """Test the cancellation token and run context."""

    def test_cancel(self):
        token = CancellationToken()
        assert not token.cancelled

        token.cancel("received SIGINT")

        assert token.cancelled
        assert token.reason == "received SIGINT"

    def test_install_outside_running_loop(self):
        token = CancellationToken()

        assert token.install_signal_handlers() is False

    @pytest.mark.asyncio
    async def test_signal_handlers_installed_and_removed(self):
        token = CancellationToken()
        loop = MagicMock(spec=asyncio.AbstractEventLoop)

        assert token.install_signal_handlers(loop=loop, signals=(signal.SIGTERM,)) is True
        loop.add_signal_handler.assert_called_once_with(signal.SIGTERM, token.cancel, "received SIGTERM")

        token.remove_signal_handlers(loop=loop)
        loop.remove_signal_handler.assert_called_once_with(signal.SIGTERM)

    def test_unsupported_platform(self):
        token = CancellationToken()
        loop = MagicMock(spec=asyncio.AbstractEventLoop)
        loop.add_signal_handler.side_effect = NotImplementedError

        assert token.install_signal_handlers(loop=loop) is False

    def test_run_context_wiring(self):
        context = RunContext.create(run_id="abc123")

        assert context.run_id == "abc123"
        assert context.error_handler.recovery_manager is context.recovery_manager
        assert not context.cancellation.cancelled

    def test_run_contexts_are_independent(self):
        first = RunContext.create()
        second = RunContext.create()

        assert first.recovery_manager is not second.recovery_manager
        assert first.run_id != second.run_id
