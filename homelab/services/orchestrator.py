"""
Installation run loop.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List

from ..exceptions import ServiceInstallationError
from ..models import HomelabConfig, InstallationOutcome
from ..recovery import RollbackAction, RunContext
from ..utils.logging import LogContext, get_logger, log_service_operation, set_run_context
from .base import ServiceDescriptor
from .factory import ServiceFactory

logger = get_logger(__name__)


@dataclass
class InstallationReport:
    """Summary of one installation run."""
    outcome: InstallationOutcome
    order: List[ServiceDescriptor] = field(default_factory=list)
    installed: List[ServiceDescriptor] = field(default_factory=list)

    @property
    def access_urls(self) -> Dict[str, str]:
        return {service.name: service.get_access_url() for service in self.installed}


class InstallationOrchestrator:
    """Installs services one at a time in the factory's order.

    Failures propagate to the caller, which decides when to unwind through
    the run context's error handler. Cancellation is checked between
    services and unwinds here, returning a CANCELLED report.
    """

    def __init__(self, factory: ServiceFactory, context: RunContext):
        self.factory = factory
        self.context = context

    async def run(self, config: HomelabConfig) -> InstallationReport:
        set_run_context(run_id=self.context.run_id)
        with LogContext("installation_run", run_id=self.context.run_id, logger_name=__name__):
            return await self._run(config)

    async def _run(self, config: HomelabConfig) -> InstallationReport:
        self.factory.validate_configuration(config)
        services = self.factory.create_services(config)
        order = self.factory.get_installation_order(services)

        logger.info(
            f"Installing {len(order)} service(s): {', '.join(s.type.value for s in order)}",
            extra={'services': [s.type.value for s in order]}
        )

        installed = []
        for service in order:
            if self.context.cancellation.cancelled:
                return await self._cancel(order, installed)

            await self._install(service)
            installed.append(service)

        if self.context.cancellation.cancelled:
            return await self._cancel(order, installed)

        logger.info(f"Installation completed: {len(installed)} service(s) installed")
        return InstallationReport(InstallationOutcome.SUCCESS, order, installed)

    async def _install(self, service: ServiceDescriptor) -> None:
        recovery_manager = self.context.recovery_manager
        start_time = time.time()

        try:
            await service.install()
        except Exception as e:
            if isinstance(e, ServiceInstallationError) and service.has_side_effects:
                recovery_manager.register_action(
                    RollbackAction(f"Clean up partial {service.name} install", service.uninstall)
                )
            log_service_operation(
                service.type.value, "install", False,
                (time.time() - start_time) * 1000, error=str(e)
            )
            raise

        recovery_manager.register_action(RollbackAction(f"Remove {service.name}", service.uninstall))
        log_service_operation(
            service.type.value, "install", True,
            (time.time() - start_time) * 1000, access_url=service.get_access_url()
        )

    async def _cancel(self, order: List[ServiceDescriptor], installed: List[ServiceDescriptor]) -> InstallationReport:
        logger.warning(
            f"Installation cancelled after {len(installed)} of {len(order)} service(s): "
            f"{self.context.cancellation.reason}"
        )
        await self.context.error_handler.unwind(reason="cancellation")
        return InstallationReport(InstallationOutcome.CANCELLED, order, installed)
