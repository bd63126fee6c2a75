"""
Per-run installation configuration.

A HomelabConfig is built once per run by the CLI and only ever read by the
orchestration core.
"""

import ipaddress
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import ConfigurationError
from .base import ServiceType


LOCAL_DOMAIN_SUFFIXES = (".lan", ".local", "localhost")

_NETWORK_NAME_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_.-")


class HomelabConfig(BaseModel):
    """Immutable description of what to install and where.

    selected_services only accepts catalog names; anything else fails
    validation when the config is built.
    """
    model_config = ConfigDict(frozen=True)

    ip: str = Field(..., description="IPv4 address of the target host")
    domain: str = Field(..., description="Base domain used for service subdomains")
    network_name: str = Field(default="homelab", description="Docker network shared by all services")
    selected_services: Tuple[ServiceType, ...] = Field(
        default=(),
        description="Optional services chosen for this run, in selection order"
    )
    database_password: Optional[str] = Field(default=None, description="Password for database services")
    storage_password: Optional[str] = Field(default=None, description="Password for object storage")
    distribution: Optional[str] = Field(default=None, description="Host distribution override")

    @field_validator('ip')
    @classmethod
    def validate_ip(cls, v):
        """Validate IPv4 address format."""
        try:
            ipaddress.IPv4Address(v)
        except ValueError:
            raise ValueError(f"Invalid IPv4 address: {v}")
        return v

    @field_validator('domain')
    @classmethod
    def validate_domain(cls, v):
        """Validate domain name format."""
        v = v.strip().lower()
        if not v or len(v) > 253:
            raise ValueError("Domain must be between 1 and 253 characters")
        if '..' in v:
            raise ValueError("Domain cannot contain consecutive dots")

        for label in v.split('.'):
            if not label or len(label) > 63:
                raise ValueError(f"Invalid domain label: '{label}'")
            if label.startswith('-') or label.endswith('-'):
                raise ValueError(f"Domain label cannot start or end with a hyphen: '{label}'")
            if not all(c.isascii() and (c.isalnum() or c == '-') for c in label):
                raise ValueError(f"Invalid characters in domain label: '{label}'")
        return v

    @field_validator('network_name')
    @classmethod
    def validate_network_name(cls, v):
        """Validate Docker network name format."""
        if not v or len(v) > 63:
            raise ValueError("Network name must be between 1 and 63 characters")
        if not v[0].isascii() or not v[0].isalnum():
            raise ValueError("Network name must start with a letter or digit")
        if v.endswith('-'):
            raise ValueError("Network name cannot end with a hyphen")
        if not set(v) <= _NETWORK_NAME_CHARS:
            raise ValueError("Network name may only contain letters, digits, '_', '.' and '-'")
        return v

    @field_validator('selected_services', mode='before')
    @classmethod
    def deduplicate_services(cls, v):
        """Drop repeated selections, keeping the first occurrence."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        seen = []
        for item in v:
            if item not in seen:
                seen.append(item)
        return tuple(seen)

    @property
    def is_local_domain(self) -> bool:
        """Check whether the domain is only resolvable inside the LAN."""
        if self.domain.endswith(LOCAL_DOMAIN_SUFFIXES):
            return True
        address = ipaddress.IPv4Address(self.ip)
        return address.is_private or address.is_loopback


def load_homelab_config(path: Union[str, Path]) -> HomelabConfig:
    """
    Load a HomelabConfig from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated HomelabConfig

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid,
            including unknown names under selected_services
    """
    path = Path(path)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError("config_file", f"file not found: {path}", cause=e)
    except yaml.YAMLError as e:
        raise ConfigurationError("config_file", f"invalid YAML in {path}", cause=e)

    if not isinstance(data, dict):
        raise ConfigurationError("config_file", "top-level value must be a mapping")

    try:
        return HomelabConfig(**data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "config"
        raise ConfigurationError(field, first.get("msg", str(e)), cause=e)
