"""
Container runtime access through the Docker SDK.
"""

import asyncio
from typing import Optional

import docker
from docker.errors import DockerException, NotFound

from ..exceptions import ContainerRuntimeError
from .logging import get_logger

logger = get_logger(__name__)


class ContainerRuntime:
    """Thin async wrapper over the blocking Docker client."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        self._docker_client = client

    @property
    def docker_client(self) -> docker.DockerClient:
        """Get Docker client, creating it if necessary."""
        if self._docker_client is None:
            try:
                self._docker_client = docker.from_env()
                self._docker_client.ping()
            except DockerException as e:
                raise ContainerRuntimeError(
                    message=f"Docker is not available or not accessible: {e}",
                    cause=e
                )
        return self._docker_client

    def _container_exists(self, name: str) -> bool:
        try:
            self.docker_client.containers.get(name)
        except NotFound:
            return False
        except DockerException as e:
            raise ContainerRuntimeError(message=f"Failed to inspect container {name}: {e}", cause=e)
        return True

    def _remove_container(self, name: str) -> bool:
        try:
            container = self.docker_client.containers.get(name)
        except NotFound:
            return False
        except DockerException as e:
            raise ContainerRuntimeError(message=f"Failed to inspect container {name}: {e}", cause=e)

        try:
            container.remove(force=True)
        except DockerException as e:
            raise ContainerRuntimeError(message=f"Failed to remove container {name}: {e}", cause=e)
        return True

    async def container_exists(self, name: str) -> bool:
        """Check whether a container with this name exists, running or not."""
        return await asyncio.to_thread(self._container_exists, name)

    async def remove_container(self, name: str) -> bool:
        """Force-remove a container.

        Returns:
            True if a container was removed, False if none existed
        """
        removed = await asyncio.to_thread(self._remove_container, name)
        if removed:
            logger.info(f"Removed container: {name}")
        return removed
