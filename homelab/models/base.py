"""Base enums shared across the homelab installer."""

from enum import Enum


class ServiceType(str, Enum):
    """Enumeration of every installable product."""
    # Core services
    CADDY = "caddy"
    PORTAINER = "portainer"
    COPYPARTY = "copyparty"

    # Data stores
    POSTGRESQL = "postgresql"
    REDIS = "redis"
    MONGODB = "mongodb"
    MARIADB = "mariadb"
    MINIO = "minio"

    # Messaging and automation
    KAFKA = "kafka"
    RABBITMQ = "rabbitmq"
    N8N = "n8n"
    KESTRA = "kestra"

    # AI and developer tooling
    OLLAMA = "ollama"
    LOCALSTACK = "localstack"
    ONEDEV = "onedev"
    SONARQUBE = "sonarqube"
    TRIVY = "trivy"
    REGISTRY = "registry"

    # Security
    AUTHELIA = "authelia"
    VAULT = "vault"

    # Productivity
    PSITRANSFER = "psitransfer"
    EXCALIDRAW = "excalidraw"
    OUTLINE = "outline"
    GRIST = "grist"
    NOCODB = "nocodb"

    # Observability
    GRAFANA = "grafana"
    LOKI = "loki"


class ServiceState(str, Enum):
    """Lifecycle state of a service descriptor within one run."""
    CREATED = "created"
    DEPENDENCIES_CHECKED = "dependencies_checked"
    CONFIG_GENERATED = "config_generated"
    INSTALLED = "installed"
    FAILED = "failed"


class InstallationOutcome(str, Enum):
    """How an installation run ended."""
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
