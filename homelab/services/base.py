"""
Service descriptor and its installation lifecycle.

A descriptor moves strictly forward through
CREATED -> DEPENDENCIES_CHECKED -> CONFIG_GENERATED -> INSTALLED, or ends in
FAILED. There are no retries: a descriptor is installed at most once.
"""

import secrets
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import Settings, get_settings
from ..exceptions import (
    CommandExecutionError,
    ServiceInstallationError,
    TemplateError,
)
from ..models import HomelabConfig, ServiceState, ServiceType
from ..templates import TemplateEngine, parse_service_blueprint, stringify
from ..utils.container import ContainerRuntime
from ..utils.files import ConfigWriter
from ..utils.logging import get_logger
from ..utils.shell import CommandRunner
from .catalog import ServiceSpec

logger = get_logger(__name__)

PASSWORD_NOT_SET = "PASSWORD_NOT_SET"


class ServiceDescriptor:
    """In-memory representation of one service for one run."""

    def __init__(
        self,
        spec: ServiceSpec,
        config: HomelabConfig,
        template_engine: TemplateEngine,
        command_runner: CommandRunner,
        config_writer: ConfigWriter,
        container_runtime: ContainerRuntime,
        settings: Optional[Settings] = None
    ):
        self.spec = spec
        self.name = spec.name
        self.type = spec.type
        self.is_core = spec.is_core
        self.dependencies = list(spec.dependencies)

        self.config = config
        self.template_engine = template_engine
        self.command_runner = command_runner
        self.config_writer = config_writer
        self.container_runtime = container_runtime
        self.settings = settings or get_settings()

        self.state = ServiceState.CREATED
        self.secrets = {name: secrets.token_urlsafe(24) for name in spec.secrets}
        self.written_files: List[Path] = []
        self.created_container = False

    def __repr__(self) -> str:
        return f"ServiceDescriptor(type={self.type.value!r}, core={self.is_core}, state={self.state.value!r})"

    @property
    def container_name(self) -> str:
        return self.container_name_for(self.type)

    def container_name_for(self, service_type: ServiceType) -> str:
        return self.settings.container_name(service_type.value)

    @property
    def config_dir(self) -> Path:
        return Path(self.settings.paths.config_dir).expanduser()

    @property
    def data_dir(self) -> Path:
        return Path(self.settings.paths.data_dir).expanduser()

    @property
    def has_side_effects(self) -> bool:
        return bool(self.written_files) or self.created_container

    def missing_credentials(self) -> List[str]:
        """Required credential fields that are absent or blank."""
        missing = []
        for field_name in self.spec.required_credentials:
            value = getattr(self.config, field_name, None)
            if not value or not value.strip():
                missing.append(field_name)
        return missing

    def _require_credentials(self, stage: str) -> None:
        missing = self.missing_credentials()
        if missing:
            raise ServiceInstallationError(
                self.type.value,
                f"{', '.join(missing)} is required but not provided",
                stage=stage
            )

    def get_template_context(self) -> Dict[str, Any]:
        """
        Build the variables handed to the template engine.

        Raises:
            ServiceInstallationError: If a required credential is missing
        """
        self._require_credentials("template_context")

        context = {
            "IP": self.config.ip,
            "DOMAIN": self.config.domain,
            "NETWORK_NAME": self.config.network_name,
            "DATABASE_PASSWORD": self.config.database_password or "",
            "STORAGE_PASSWORD": self.config.storage_password or "",
            "SERVICE_NAME": self.name,
            "CONTAINER_NAME": self.container_name,
            "CONFIG_DIR": str(self.config_dir),
            "DATA_DIR": str(self.data_dir),
        }
        context.update(self.secrets)
        return context

    def get_access_url(self) -> str:
        """Compute where the service is reachable. Pure, valid before install."""
        def credential(value: Optional[str]) -> str:
            return value if value and value.strip() else PASSWORD_NOT_SET

        return self.spec.access_url.format(
            ip=self.config.ip,
            domain=self.config.domain,
            database_password=credential(self.config.database_password),
            storage_password=credential(self.config.storage_password),
        )

    async def check_dependencies(self) -> bool:
        """Verify declared dependencies are reachable. Succeeds when no probe is set."""
        if self.spec.probe is None:
            return True
        return await self.spec.probe(self)

    async def generate_config_files(self) -> None:
        """Render and write this service's configuration files, if it has any."""
        if self.spec.generate_config is None:
            return
        await self.spec.generate_config(self)

    async def write_config(self, path: Path, content: str) -> Path:
        """Write a generated file and remember it for rollback."""
        written = await self.config_writer.write(path, content)
        self.written_files.append(written)
        return written

    async def install(self) -> None:
        """
        Check dependencies, generate configuration, then bring the container up.

        Raises:
            ServiceInstallationError: Naming the service and failed stage
            TemplateError: If a template is malformed or a variable is missing
        """
        if self.state != ServiceState.CREATED:
            raise ServiceInstallationError(
                self.type.value,
                f"cannot install from state '{self.state.value}'",
                stage="install"
            )

        stage = "check_credentials"
        try:
            self._require_credentials(stage)

            stage = "check_dependencies"
            if not await self.check_dependencies():
                raise ServiceInstallationError(
                    self.type.value,
                    f"dependencies not available: {', '.join(d.value for d in self.dependencies)}",
                    stage=stage
                )
            self.state = ServiceState.DEPENDENCIES_CHECKED

            stage = "generate_config"
            await self.generate_config_files()
            self.state = ServiceState.CONFIG_GENERATED

            stage = "bring_up"
            await self._bring_up()

        except (ServiceInstallationError, TemplateError):
            self.state = ServiceState.FAILED
            raise
        except Exception as e:
            self.state = ServiceState.FAILED
            reason = getattr(e, "message", None) or str(e)
            raise ServiceInstallationError(self.type.value, reason, stage=stage, cause=e)

        self.state = ServiceState.INSTALLED
        logger.info(f"{self.name} installed", extra={'service': self.type.value})

    async def _bring_up(self) -> None:
        template = await self.template_engine.load(f"services/{self.type.value}")
        blueprint = parse_service_blueprint(template)

        if await self.container_runtime.container_exists(self.container_name):
            logger.info(f"Container {self.container_name} already exists, skipping {self.name} bring-up")
            return

        # Commands run through sh -c, so every substituted value is one shell word
        context = {
            key: shlex.quote(stringify(value))
            for key, value in self.get_template_context().items()
        }
        commands = [
            self.template_engine.render_text(f"{template.name}#{index}", command, context)
            for index, command in enumerate(blueprint.commands.ordered())
        ]

        for command in commands:
            result = await self.command_runner.run(command)
            if not result.succeeded:
                # docker run -d can create the container and still fail to start it
                if await self.container_runtime.container_exists(self.container_name):
                    self.created_container = True
                raise ServiceInstallationError(
                    self.type.value,
                    f"command exited with status {result.exit_code}: {result.stderr.strip() or command}",
                    stage="bring_up",
                    cause=CommandExecutionError(command, result.exit_code, result.stderr)
                )

        self.created_container = True

    async def uninstall(self) -> None:
        """Undo what this run did: remove the container it created and the files it wrote."""
        if self.created_container:
            await self.container_runtime.remove_container(self.container_name)
            self.created_container = False

        while self.written_files:
            await self.config_writer.remove(self.written_files.pop())
