"""
Tests for the installation run loop.
"""

from unittest.mock import patch

import pytest

from homelab.exceptions import ServiceInstallationError
from homelab.models import HomelabConfig, InstallationOutcome, ServiceState, ServiceType
from homelab.services import InstallationOrchestrator
from homelab.utils.logging import clear_run_context
from homelab.utils.shell import CommandResult


@pytest.fixture
def orchestrator(service_factory, run_context):
    return InstallationOrchestrator(service_factory, run_context)


def fail_on(fragment):
    """Command runner side effect failing every command containing fragment."""
    def run(command):
        if fragment in command:
            return CommandResult(command=command, exit_code=1, stderr="simulated failure")
        return CommandResult(command=command, exit_code=0)
    return run


@pytest.mark.unit
class TestInstallationRun:
    """Test a full run against mocked collaborators."""

    @pytest.mark.asyncio
    async def test_successful_run(self, orchestrator, homelab_config, run_context):
        report = await orchestrator.run(homelab_config)

        assert report.outcome == InstallationOutcome.SUCCESS
        assert [s.type for s in report.installed] == [
            ServiceType.CADDY,
            ServiceType.PORTAINER,
            ServiceType.COPYPARTY,
            ServiceType.N8N,
            ServiceType.POSTGRESQL,
        ]
        assert all(s.state == ServiceState.INSTALLED for s in report.installed)
        assert run_context.recovery_manager.pending_actions() == [
            "Remove Caddy",
            "Remove Portainer",
            "Remove Copyparty",
            "Remove n8n",
            "Remove PostgreSQL",
        ]

    @pytest.mark.asyncio
    async def test_report_access_urls(self, orchestrator, homelab_config):
        report = await orchestrator.run(homelab_config)

        urls = report.access_urls
        assert urls["Portainer"] == "https://portainer.homelab.local"
        assert urls["n8n"] == "https://n8n.homelab.local"

    @pytest.mark.asyncio
    async def test_invalid_configuration_installs_nothing(self, orchestrator, command_runner, run_context):
        config = HomelabConfig(
            ip="192.168.1.100",
            domain="homelab.local",
            selected_services=[ServiceType.POSTGRESQL],
        )

        with pytest.raises(ServiceInstallationError):
            await orchestrator.run(config)

        command_runner.run.assert_not_awaited()
        assert not run_context.recovery_manager.has_actions()

    @pytest.mark.asyncio
    async def test_failure_propagates_without_rollback(
        self, orchestrator, homelab_config, command_runner, container_runtime, run_context
    ):
        command_runner.run.side_effect = fail_on("n8nio/n8n")

        with pytest.raises(ServiceInstallationError) as exc_info:
            await orchestrator.run(homelab_config)

        assert exc_info.value.service_type == "n8n"
        container_runtime.remove_container.assert_not_awaited()
        # n8n failed before creating anything, so only completed services remain
        assert run_context.recovery_manager.pending_actions() == [
            "Remove Caddy",
            "Remove Portainer",
            "Remove Copyparty",
        ]

    @pytest.mark.asyncio
    async def test_partial_install_registers_cleanup(
        self, orchestrator, homelab_config, command_runner, run_context
    ):
        command_runner.run.side_effect = fail_on("caddy:2")

        with pytest.raises(ServiceInstallationError):
            await orchestrator.run(homelab_config)

        # The Caddyfile was written before bring-up failed
        assert run_context.recovery_manager.pending_actions() == ["Clean up partial Caddy install"]

    @pytest.mark.asyncio
    async def test_container_created_by_failed_start_is_cleaned_up(
        self, orchestrator, homelab_config, command_runner, container_runtime, run_context
    ):
        created = set()

        def run(command):
            # The container is created, then the start fails
            if "postgres:16" in command:
                created.add("postgresql")
                return CommandResult(command=command, exit_code=125, stderr="port is already allocated")
            return CommandResult(command=command, exit_code=0)

        command_runner.run.side_effect = run
        container_runtime.container_exists.side_effect = lambda name: name in created

        with pytest.raises(ServiceInstallationError) as exc_info:
            await orchestrator.run(homelab_config)

        assert exc_info.value.service_type == "postgresql"
        assert run_context.recovery_manager.pending_actions()[-1] == "Clean up partial PostgreSQL install"

        await run_context.error_handler.unwind()

        removed = [call.args[0] for call in container_runtime.remove_container.await_args_list]
        assert removed[0] == "postgresql"

    @pytest.mark.asyncio
    async def test_failure_then_unwind_removes_in_reverse(
        self, orchestrator, homelab_config, command_runner, container_runtime, run_context
    ):
        command_runner.run.side_effect = fail_on("n8nio/n8n")

        with pytest.raises(ServiceInstallationError):
            await orchestrator.run(homelab_config)
        await run_context.error_handler.unwind()

        removed = [call.args[0] for call in container_runtime.remove_container.await_args_list]
        assert removed == ["copyparty", "portainer", "caddy"]

    @pytest.mark.asyncio
    async def test_run_timing_carries_run_id(self, orchestrator, homelab_config):
        clear_run_context()

        with patch('homelab.utils.logging.get_logger') as mock_get_logger:
            await orchestrator.run(homelab_config)

        records = [
            call[1]['extra'] for call in mock_get_logger.return_value.info.call_args_list
            if call[1].get('extra', {}).get('operation') == 'installation_run'
        ]
        assert len(records) == 1
        assert records[0]['run_id'] == "test-run"
        assert records[0]['status'] == 'success'


@pytest.mark.unit
class TestCancellation:
    """Test cooperative cancellation between services."""

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, orchestrator, homelab_config, command_runner, run_context):
        run_context.cancellation.cancel("test")

        report = await orchestrator.run(homelab_config)

        assert report.outcome == InstallationOutcome.CANCELLED
        assert report.installed == []
        command_runner.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_mid_run_unwinds(
        self, orchestrator, homelab_config, command_runner, container_runtime, run_context
    ):
        def run(command):
            # Request cancellation while Portainer is coming up
            if "portainer/portainer" in command:
                run_context.cancellation.cancel("received SIGINT")
            return CommandResult(command=command, exit_code=0)

        command_runner.run.side_effect = run

        report = await orchestrator.run(homelab_config)

        assert report.outcome == InstallationOutcome.CANCELLED
        assert [s.type for s in report.installed] == [ServiceType.CADDY, ServiceType.PORTAINER]
        removed = [call.args[0] for call in container_runtime.remove_container.await_args_list]
        assert removed == ["portainer", "caddy"]
        assert not run_context.recovery_manager.has_actions()
