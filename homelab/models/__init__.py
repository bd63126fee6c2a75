"""Data models package for the homelab installer."""

from .base import ServiceType, ServiceState, InstallationOutcome
from .config import HomelabConfig, load_homelab_config

__all__ = [
    "ServiceType",
    "ServiceState",
    "InstallationOutcome",
    "HomelabConfig",
    "load_homelab_config",
]
