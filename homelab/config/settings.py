"""
Configuration management for the homelab installer.

Runtime settings (where blueprints live, where generated files go, how logs
look) come from environment variables prefixed with ``HOMELAB_`` or from a
``.env`` file. The per-run HomelabConfig collected from the user is a
separate model, see ``homelab.models.config``.
"""

from pathlib import Path
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


BLUEPRINTS_DIR = Path(__file__).resolve().parent.parent / "templates" / "blueprints"


class LogLevel(str, Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class TemplateConfig(BaseModel):
    """Blueprint lookup settings."""

    directory: Path = Field(
        default=BLUEPRINTS_DIR,
        description="Directory holding service and config blueprints"
    )
    extensions: tuple = Field(
        default=(".yml", ".yaml", ".json"),
        description="File extensions tried in order when resolving a template name"
    )

    @field_validator('extensions')
    @classmethod
    def validate_extensions(cls, v):
        """Validate that every extension starts with a dot."""
        if not v:
            raise ValueError("At least one template extension is required")
        for ext in v:
            if not str(ext).startswith('.'):
                raise ValueError(f"Invalid template extension: {ext}")
        return tuple(v)


class PathConfig(BaseModel):
    """Host locations for generated configuration and service data."""

    config_dir: Path = Field(
        default_factory=lambda: Path.home() / "wsconf",
        description="Directory receiving generated configuration files"
    )
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / "wsdata",
        description="Directory receiving persistent service data"
    )
    os_release: Path = Field(
        default=Path("/etc/os-release"),
        description="File used to detect the host distribution"
    )


class MonitoringConfig(BaseModel):
    """Logging configuration."""

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application log level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format for plain text output"
    )
    structured: bool = Field(
        default=False,
        description="Emit JSON log lines instead of plain text"
    )


class Settings(BaseSettings):
    """Main installer settings with environment variable support."""

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    templates: TemplateConfig = Field(
        default_factory=TemplateConfig,
        description="Template configuration"
    )
    paths: PathConfig = Field(
        default_factory=PathConfig,
        description="Host path configuration"
    )
    monitoring: MonitoringConfig = Field(
        default_factory=MonitoringConfig,
        description="Logging configuration"
    )
    container_prefix: Optional[str] = Field(
        default=None,
        description="Optional prefix prepended to every container name"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_prefix": "HOMELAB_",
        "extra": "ignore"
    }

    def container_name(self, service_name: str) -> str:
        """Get the container name used for a service."""
        if self.container_prefix:
            return f"{self.container_prefix}{service_name}"
        return service_name


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment variables and files."""
    global settings
    settings = Settings()
    return settings
