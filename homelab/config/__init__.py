"""
Configuration package for the homelab installer.
"""

from .settings import (
    Settings,
    TemplateConfig,
    PathConfig,
    MonitoringConfig,
    LogLevel,
    BLUEPRINTS_DIR,
    settings,
    get_settings,
    reload_settings
)

__all__ = [
    "Settings",
    "TemplateConfig",
    "PathConfig",
    "MonitoringConfig",
    "LogLevel",
    "BLUEPRINTS_DIR",
    "settings",
    "get_settings",
    "reload_settings"
]
