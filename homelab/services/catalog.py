"""
Service catalog.

Every installable product is a ServiceSpec record keyed by its ServiceType.
Behaviour that differs between products (config generation, dependency
probes) is attached as plain async functions taking the descriptor.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional, Tuple

from ..models import ServiceType
from ..utils.logging import get_logger

if TYPE_CHECKING:
    from .base import ServiceDescriptor

logger = get_logger(__name__)

ConfigHook = Callable[["ServiceDescriptor"], Awaitable[None]]
ProbeHook = Callable[["ServiceDescriptor"], Awaitable[bool]]

DATABASE_PASSWORD = "database_password"
STORAGE_PASSWORD = "storage_password"


@dataclass(frozen=True)
class ProxyRoute:
    """Subdomain and container port published through the reverse proxy."""
    subdomain: str
    port: int


@dataclass(frozen=True)
class ServiceSpec:
    """Static description of one installable product."""
    type: ServiceType
    name: str
    access_url: str
    is_core: bool = False
    dependencies: Tuple[ServiceType, ...] = ()
    required_credentials: Tuple[str, ...] = ()
    proxy: Optional[ProxyRoute] = None
    secrets: Tuple[str, ...] = ()
    generate_config: Optional[ConfigHook] = None
    probe: Optional[ProbeHook] = None


# Config generation hooks

async def write_caddyfile(service: "ServiceDescriptor") -> None:
    """Render the Caddyfile with one site block per proxied service."""
    config = service.config

    if config.is_local_domain:
        # Caddy issues certificates from its internal CA
        global_options = ""
    else:
        global_options = f"{{\n    email admin@{config.domain}\n}}\n"

    blocks = []
    for route, container in proxy_routes(service):
        blocks.append(
            f"{route.subdomain}.{config.domain} {{\n"
            f"    reverse_proxy {container}:{route.port}\n"
            f"}}\n"
        )

    template = await service.template_engine.load("config/caddy")
    context = service.get_template_context()
    context.update(GLOBAL_OPTIONS=global_options, SITE_BLOCKS="\n".join(blocks))

    await service.write_config(service.config_dir / "Caddyfile", service.template_engine.render(template, context))


def proxy_routes(service: "ServiceDescriptor") -> List[Tuple[ProxyRoute, str]]:
    """Routes for the core services plus the selected ones, in that order."""
    wanted = [t for t, spec in SERVICE_CATALOG.items() if spec.is_core]
    wanted += [t for t in service.config.selected_services if t not in wanted]

    routes = []
    for service_type in wanted:
        spec = SERVICE_CATALOG.get(service_type)
        if spec is None or spec.proxy is None or service_type == service.type:
            continue
        routes.append((spec.proxy, service.container_name_for(service_type)))
    return routes


async def write_copyparty_config(service: "ServiceDescriptor") -> None:
    await service.config_writer.ensure_directory(service.data_dir / "copyparty")

    template = await service.template_engine.load("config/copyparty")
    content = service.template_engine.render(template, service.get_template_context())
    await service.write_config(service.config_dir / "copyparty.conf", content)


async def write_authelia_config(service: "ServiceDescriptor") -> None:
    template = await service.template_engine.load("config/authelia")
    content = service.template_engine.render(template, service.get_template_context())
    await service.write_config(service.data_dir / "authelia" / "config" / "configuration.yml", content)


# Dependency probes

async def dependency_containers_exist(service: "ServiceDescriptor") -> bool:
    """Check that a container exists for every declared dependency."""
    missing = []
    for dependency in service.dependencies:
        name = service.container_name_for(dependency)
        if not await service.container_runtime.container_exists(name):
            missing.append(dependency.value)

    if missing:
        logger.warning(
            f"{service.name} is missing dependencies: {', '.join(missing)}",
            extra={'service': service.type.value, 'missing': missing}
        )
        return False
    return True


def _spec(service_type: ServiceType, name: str, access_url: str, **kwargs) -> Tuple[ServiceType, ServiceSpec]:
    return service_type, ServiceSpec(type=service_type, name=name, access_url=access_url, **kwargs)


SERVICE_CATALOG: Dict[ServiceType, ServiceSpec] = dict([
    # Core services, always installed in this order
    _spec(ServiceType.CADDY, "Caddy", "https://{domain}",
          is_core=True, generate_config=write_caddyfile),
    _spec(ServiceType.PORTAINER, "Portainer", "https://portainer.{domain}",
          is_core=True, proxy=ProxyRoute("portainer", 9000)),
    _spec(ServiceType.COPYPARTY, "Copyparty", "https://files.{domain}",
          is_core=True, proxy=ProxyRoute("files", 3923),
          secrets=("COPYPARTY_ADMIN_PASSWORD",), generate_config=write_copyparty_config),

    # Data stores
    _spec(ServiceType.POSTGRESQL, "PostgreSQL",
          "postgresql://homelab:{database_password}@{ip}:5432/homelab",
          required_credentials=(DATABASE_PASSWORD,)),
    _spec(ServiceType.REDIS, "Redis", "redis://{ip}:6379"),
    _spec(ServiceType.MONGODB, "MongoDB", "mongodb://admin:{database_password}@{ip}:27017/admin",
          required_credentials=(DATABASE_PASSWORD,)),
    _spec(ServiceType.MARIADB, "MariaDB", "mysql://homelab:{database_password}@{ip}:3306/homelab",
          required_credentials=(DATABASE_PASSWORD,)),
    _spec(ServiceType.MINIO, "MinIO", "https://minio.{domain}",
          required_credentials=(STORAGE_PASSWORD,), proxy=ProxyRoute("minio", 9001)),

    # Messaging and automation
    _spec(ServiceType.KAFKA, "Kafka", "kafka://{ip}:9092"),
    _spec(ServiceType.RABBITMQ, "RabbitMQ", "http://{ip}:15672",
          proxy=ProxyRoute("rabbitmq", 15672), secrets=("RABBITMQ_PASSWORD",)),
    _spec(ServiceType.N8N, "n8n", "https://n8n.{domain}", proxy=ProxyRoute("n8n", 5678)),
    _spec(ServiceType.KESTRA, "Kestra", "https://kestra.{domain}", proxy=ProxyRoute("kestra", 8080)),

    # AI and developer tooling
    _spec(ServiceType.OLLAMA, "Ollama", "https://ollama.{domain}", proxy=ProxyRoute("ollama", 11434)),
    _spec(ServiceType.LOCALSTACK, "LocalStack", "http://{ip}:4566"),
    _spec(ServiceType.ONEDEV, "OneDev", "https://onedev.{domain}", proxy=ProxyRoute("onedev", 6610)),
    _spec(ServiceType.SONARQUBE, "SonarQube", "https://sonarqube.{domain}", proxy=ProxyRoute("sonarqube", 9000)),
    _spec(ServiceType.TRIVY, "Trivy", "http://{ip}:8080", proxy=ProxyRoute("trivy", 8080)),
    _spec(ServiceType.REGISTRY, "Docker Registry", "https://registry.{domain}",
          proxy=ProxyRoute("registry", 5000)),

    # Security
    _spec(ServiceType.AUTHELIA, "Authelia", "https://authelia.{domain}",
          dependencies=(ServiceType.REDIS,), proxy=ProxyRoute("authelia", 9091),
          secrets=("AUTHELIA_JWT_SECRET", "AUTHELIA_SESSION_SECRET", "AUTHELIA_STORAGE_KEY"),
          generate_config=write_authelia_config, probe=dependency_containers_exist),
    _spec(ServiceType.VAULT, "Vault", "https://vault.{domain}",
          proxy=ProxyRoute("vault", 8200), secrets=("VAULT_ROOT_TOKEN",)),

    # Productivity
    _spec(ServiceType.PSITRANSFER, "PsiTransfer", "http://{ip}:3000", proxy=ProxyRoute("psitransfer", 3000)),
    _spec(ServiceType.EXCALIDRAW, "Excalidraw", "https://excalidraw.{domain}", proxy=ProxyRoute("excalidraw", 80)),
    _spec(ServiceType.OUTLINE, "Outline", "http://{ip}:3030",
          dependencies=(ServiceType.POSTGRESQL, ServiceType.REDIS),
          required_credentials=(DATABASE_PASSWORD,), proxy=ProxyRoute("outline", 3000),
          secrets=("OUTLINE_SECRET_KEY", "OUTLINE_UTILS_SECRET"), probe=dependency_containers_exist),
    _spec(ServiceType.GRIST, "Grist", "https://grist.{domain}", proxy=ProxyRoute("grist", 8484)),
    _spec(ServiceType.NOCODB, "NocoDB", "https://nocodb.{domain}", proxy=ProxyRoute("nocodb", 8080)),

    # Observability
    _spec(ServiceType.GRAFANA, "Grafana", "https://grafana.{domain}",
          proxy=ProxyRoute("grafana", 3000), secrets=("GRAFANA_ADMIN_PASSWORD",)),
    _spec(ServiceType.LOKI, "Loki", "http://{ip}:3100", proxy=ProxyRoute("loki", 3100)),
])
