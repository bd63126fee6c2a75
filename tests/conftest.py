"""
Pytest configuration and shared fixtures
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from homelab.config import BLUEPRINTS_DIR, Settings, PathConfig
from homelab.models import HomelabConfig, ServiceType
from homelab.recovery import RunContext
from homelab.services import ServiceFactory
from homelab.templates import TemplateEngine, TemplateLoader
from homelab.utils.container import ContainerRuntime
from homelab.utils.files import ConfigWriter
from homelab.utils.shell import CommandResult, CommandRunner


@pytest.fixture
def homelab_config():
    """Configuration selecting one workflow tool and one database"""
    return HomelabConfig(
        ip="192.168.1.100",
        domain="homelab.local",
        network_name="homelab",
        selected_services=[ServiceType.N8N, ServiceType.POSTGRESQL],
        database_password="super-secret",
    )


@pytest.fixture
def public_config():
    """Configuration with a public domain and no credentials"""
    return HomelabConfig(
        ip="93.184.216.34",
        domain="example.com",
        network_name="homelab",
    )


@pytest.fixture
def test_settings(tmp_path):
    """Settings writing generated files below a temporary directory"""
    return Settings(
        paths=PathConfig(
            config_dir=tmp_path / "wsconf",
            data_dir=tmp_path / "wsdata",
            os_release=tmp_path / "os-release",
        )
    )


@pytest.fixture
def template_engine():
    """Template engine reading the packaged blueprints"""
    return TemplateEngine(TemplateLoader(BLUEPRINTS_DIR))


@pytest.fixture
def command_runner():
    """Command runner where every command succeeds"""
    runner = MagicMock(spec=CommandRunner)
    runner.run = AsyncMock(side_effect=lambda command: CommandResult(command=command, exit_code=0))
    return runner


@pytest.fixture
def container_runtime():
    """Container runtime reporting that no container exists yet"""
    runtime = MagicMock(spec=ContainerRuntime)
    runtime.container_exists = AsyncMock(return_value=False)
    runtime.remove_container = AsyncMock(return_value=True)
    return runtime


@pytest.fixture
def config_writer():
    return ConfigWriter()


@pytest.fixture
def service_factory(template_engine, command_runner, config_writer, container_runtime, test_settings):
    """Factory wired to mocked external collaborators"""
    return ServiceFactory(
        template_engine=template_engine,
        command_runner=command_runner,
        config_writer=config_writer,
        container_runtime=container_runtime,
        settings=test_settings,
    )


@pytest.fixture
def run_context():
    return RunContext.create(run_id="test-run")
