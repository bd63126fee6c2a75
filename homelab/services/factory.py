"""
Service registry and factory.
"""

from functools import partial
from typing import Callable, Dict, List, Mapping, Optional, Union

from ..config import Settings, get_settings
from ..exceptions import ServiceInstallationError, UnknownServiceError
from ..models import HomelabConfig, ServiceType
from ..templates import TemplateEngine
from ..utils.container import ContainerRuntime
from ..utils.files import ConfigWriter
from ..utils.logging import get_logger
from ..utils.shell import CommandRunner
from .base import ServiceDescriptor
from .catalog import SERVICE_CATALOG, ServiceSpec

logger = get_logger(__name__)

ServiceConstructor = Callable[[HomelabConfig], ServiceDescriptor]


class ServiceFactory:
    """Builds, caches, validates and orders service descriptors.

    Descriptors are memoized by ServiceType for the lifetime of the factory,
    so one factory should serve exactly one run.
    """

    def __init__(
        self,
        template_engine: Optional[TemplateEngine] = None,
        command_runner: Optional[CommandRunner] = None,
        config_writer: Optional[ConfigWriter] = None,
        container_runtime: Optional[ContainerRuntime] = None,
        catalog: Optional[Mapping[ServiceType, ServiceSpec]] = None,
        settings: Optional[Settings] = None
    ):
        """Initialize the factory.

        Args:
            template_engine: Engine shared by every descriptor
            command_runner: Runs bring-up commands
            config_writer: Writes generated configuration files
            container_runtime: Checks and removes containers
            catalog: Service records to register (defaults to the full catalog)
            settings: Installer settings (defaults to the global settings)
        """
        self.template_engine = template_engine or TemplateEngine()
        self.command_runner = command_runner or CommandRunner()
        self.config_writer = config_writer or ConfigWriter()
        self.container_runtime = container_runtime or ContainerRuntime()
        self.settings = settings or get_settings()
        self.catalog: Dict[ServiceType, ServiceSpec] = dict(SERVICE_CATALOG if catalog is None else catalog)

        self._constructors: Dict[ServiceType, ServiceConstructor] = {
            service_type: partial(self._build, spec) for service_type, spec in self.catalog.items()
        }
        self._cache: Dict[ServiceType, ServiceDescriptor] = {}

    def _build(self, spec: ServiceSpec, config: HomelabConfig) -> ServiceDescriptor:
        return ServiceDescriptor(
            spec=spec,
            config=config,
            template_engine=self.template_engine,
            command_runner=self.command_runner,
            config_writer=self.config_writer,
            container_runtime=self.container_runtime,
            settings=self.settings
        )

    def _lookup(self, service_type: Union[ServiceType, str]) -> ServiceType:
        try:
            key = ServiceType(service_type)
        except ValueError:
            raise UnknownServiceError(str(service_type))
        if key not in self._constructors:
            raise UnknownServiceError(key.value)
        return key

    def create_service(self, service_type: Union[ServiceType, str], config: HomelabConfig) -> ServiceDescriptor:
        """
        Return the descriptor for a service type, constructing it on first use.

        Raises:
            UnknownServiceError: If no constructor is registered for the type
        """
        key = self._lookup(service_type)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        descriptor = self._constructors[key](config)
        self._cache[key] = descriptor
        logger.debug(f"Created service descriptor: {key.value}")
        return descriptor

    def create_services(self, config: HomelabConfig) -> List[ServiceDescriptor]:
        """Core services followed by every selected service not already included.

        Declared dependencies are not added; selecting them is up to the caller.
        """
        service_types = self.get_core_services()
        for service_type in config.selected_services:
            if service_type not in service_types:
                service_types.append(service_type)

        return [self.create_service(service_type, config) for service_type in service_types]

    def validate_configuration(self, config: HomelabConfig) -> None:
        """
        Check a configuration before anything is installed.

        Raises:
            UnknownServiceError: If a selected service has no constructor
            ServiceInstallationError: If a selected service lacks its credential
        """
        for service_type in config.selected_services:
            self._lookup(service_type)

        service_types = self.get_core_services() + [
            t for t in config.selected_services if t not in self.get_core_services()
        ]
        for service_type in service_types:
            spec = self.catalog[ServiceType(service_type)]
            for field_name in spec.required_credentials:
                value = getattr(config, field_name, None)
                if not value or not value.strip():
                    raise ServiceInstallationError(
                        spec.type.value,
                        f"{field_name} is required but not provided",
                        stage="validate_configuration"
                    )

        logger.debug(f"Configuration valid for {len(service_types)} service(s)")

    def get_installation_order(self, services: List[ServiceDescriptor]) -> List[ServiceDescriptor]:
        """Stable partition: core services first, then optional ones.

        Declared dependencies are not taken into account.
        """
        core = [service for service in services if service.is_core]
        optional = [service for service in services if not service.is_core]
        return core + optional

    def get_core_services(self) -> List[ServiceType]:
        return [service_type for service_type, spec in self.catalog.items() if spec.is_core]

    def get_optional_services(self) -> List[ServiceType]:
        return [service_type for service_type, spec in self.catalog.items() if not spec.is_core]

    def resolve_dependencies(self, service_type: Union[ServiceType, str], config: HomelabConfig) -> List[ServiceDescriptor]:
        """Descriptors for the declared dependencies of a service."""
        key = self._lookup(service_type)
        return [self.create_service(dependency, config) for dependency in self.catalog[key].dependencies]

    def get_cached_services(self) -> Dict[ServiceType, ServiceDescriptor]:
        return dict(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.debug("Service cache cleared")
