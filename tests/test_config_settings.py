"""
Tests for installer settings.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from homelab.config import (
    BLUEPRINTS_DIR,
    LogLevel,
    MonitoringConfig,
    PathConfig,
    Settings,
    TemplateConfig,
    get_settings,
    reload_settings,
)


@pytest.mark.unit
class TestTemplateConfig:
    """Test blueprint lookup settings."""

    def test_default_values(self):
        config = TemplateConfig()

        assert config.directory == BLUEPRINTS_DIR
        assert config.extensions == (".yml", ".yaml", ".json")

    def test_packaged_blueprints_exist(self):
        assert (BLUEPRINTS_DIR / "services").is_dir()
        assert (BLUEPRINTS_DIR / "config").is_dir()

    def test_extension_must_start_with_dot(self):
        with pytest.raises(ValidationError):
            TemplateConfig(extensions=("yml",))

    def test_extensions_required(self):
        with pytest.raises(ValidationError):
            TemplateConfig(extensions=())


@pytest.mark.unit
class TestPathConfig:
    """Test host path settings."""

    def test_default_values(self):
        config = PathConfig()

        assert config.config_dir == Path.home() / "wsconf"
        assert config.data_dir == Path.home() / "wsdata"
        assert config.os_release == Path("/etc/os-release")


@pytest.mark.unit
class TestSettings:
    """Test main settings."""

    def test_default_values(self):
        settings = Settings()

        assert settings.debug is False
        assert settings.container_prefix is None
        assert settings.monitoring.log_level == LogLevel.INFO
        assert settings.monitoring.structured is False

    def test_container_name(self):
        assert Settings().container_name("caddy") == "caddy"
        assert Settings(container_prefix="lab-").container_name("caddy") == "lab-caddy"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            MonitoringConfig(log_level="LOUD")

    @patch.dict(os.environ, {
        'HOMELAB_DEBUG': 'true',
        'HOMELAB_CONTAINER_PREFIX': 'hl-',
        'HOMELAB_MONITORING__LOG_LEVEL': 'DEBUG',
        'HOMELAB_PATHS__DATA_DIR': '/srv/homelab',
    })
    def test_environment_variable_loading(self):
        settings = Settings()

        assert settings.debug is True
        assert settings.container_prefix == 'hl-'
        assert settings.monitoring.log_level == LogLevel.DEBUG
        assert settings.paths.data_dir == Path('/srv/homelab')

    def test_reload_settings(self):
        try:
            with patch.dict(os.environ, {'HOMELAB_CONTAINER_PREFIX': 'reloaded-'}):
                reloaded = reload_settings()

            assert reloaded.container_prefix == 'reloaded-'
            assert get_settings() is reloaded
        finally:
            reload_settings()
