"""Service catalog, lifecycle, factory and run loop."""

from .catalog import SERVICE_CATALOG, ServiceSpec, ProxyRoute
from .base import ServiceDescriptor, PASSWORD_NOT_SET
from .factory import ServiceFactory
from .orchestrator import InstallationOrchestrator, InstallationReport

__all__ = [
    "SERVICE_CATALOG",
    "ServiceSpec",
    "ProxyRoute",
    "ServiceDescriptor",
    "PASSWORD_NOT_SET",
    "ServiceFactory",
    "InstallationOrchestrator",
    "InstallationReport",
]
