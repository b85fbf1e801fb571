"""Resource client for a remote Docker host, built on aiodocker."""

import asyncio
import json
import ssl
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import aiodocker
import aiohttp
from aiodocker.networks import DockerNetwork
from aiodocker.volumes import DockerVolume

from mcp_container_env.types import DockerNodeConfig
from mcp_container_env.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def build_ssl_context(config: DockerNodeConfig) -> Optional[ssl.SSLContext]:
    """Build the TLS context for an https Docker node."""
    if config.protocol != "https":
        return None

    context = ssl.create_default_context(cafile=config.ca)
    if config.cert and config.key:
        context.load_cert_chain(config.cert, config.key)
    if not config.check_hostname:
        # Certificates are still verified against the CA, only the
        # hostname identity check is skipped.
        context.check_hostname = False
    return context


class ContainerHandle:
    """Lazy reference to a single remote container."""

    def __init__(self, client: "DockerResourceClient", container_id: str):
        self.client = client
        self.id = container_id

    async def inspect(self) -> Dict[str, Any]:
        return await self.client.run(
            lambda docker: docker.containers.container(self.id).show()
        )

    async def pause(self) -> None:
        await self.client.run(
            lambda docker: docker.containers.container(self.id).pause()
        )

    async def unpause(self) -> None:
        await self.client.run(
            lambda docker: docker.containers.container(self.id).unpause()
        )

    async def remove(self, force: bool = False) -> None:
        await self.client.run(
            lambda docker: docker.containers.container(self.id).delete(force=force)
        )


class NetworkHandle:
    """Lazy reference to a single remote network."""

    def __init__(self, client: "DockerResourceClient", network_id: str):
        self.client = client
        self.id = network_id

    async def remove(self) -> None:
        await self.client.run(lambda docker: DockerNetwork(docker, self.id).delete())


class VolumeHandle:
    """Lazy reference to a single remote volume."""

    def __init__(self, client: "DockerResourceClient", name: str):
        self.client = client
        self.name = name

    async def remove(self) -> None:
        await self.client.run(lambda docker: DockerVolume(docker, self.name).delete())


class DockerResourceClient:
    """List, inspect and remove containers, networks and volumes on a Docker node.

    The underlying aiodocker client (and its aiohttp session) is opened on first
    use, so handles can be resolved before an event loop is running. Every call
    is bounded by the node's timeout when one is configured.
    """

    def __init__(self, config: DockerNodeConfig):
        self.config = config
        self._docker: Optional[aiodocker.Docker] = None
        self._connector: Optional[aiohttp.TCPConnector] = None

    async def _get_docker(self) -> aiodocker.Docker:
        if self._docker is None:
            if self.config.host:
                self._connector = aiohttp.TCPConnector(ssl=build_ssl_context(self.config) or False)
                self._docker = aiodocker.Docker(url=self.config.url, connector=self._connector)
            else:
                # DOCKER_HOST or the local socket
                self._docker = aiodocker.Docker()
            logger.debug("docker_client_opened", url=self._docker.docker_host)
        return self._docker

    async def run(self, operation: Callable[[aiodocker.Docker], Awaitable[T]]) -> T:
        """Run one remote operation against the Docker node."""
        docker = await self._get_docker()
        async with asyncio.timeout(self.config.timeout or None):
            return await operation(docker)

    async def close(self) -> None:
        if self._docker is not None:
            await self._docker.close()
            self._docker = None
        # aiodocker leaves a connector it was handed open
        if self._connector is not None:
            if not self._connector.closed:
                await self._connector.close()
            self._connector = None

    async def list_containers(
        self, *, all: bool = True, filters: Optional[Dict[str, List[str]]] = None
    ) -> List[Any]:
        """List container summaries; each supports ``summary["Id"]``."""
        params: Dict[str, Any] = {"all": all}
        if filters:
            params["filters"] = json.dumps(filters)
        return await self.run(lambda docker: docker.containers.list(**params))

    def container(self, container_id: str) -> ContainerHandle:
        return ContainerHandle(self, container_id)

    async def list_networks(self) -> List[Dict[str, Any]]:
        return await self.run(lambda docker: docker.networks.list())

    def network(self, network_id: str) -> NetworkHandle:
        return NetworkHandle(self, network_id)

    async def list_volumes(self) -> List[Dict[str, Any]]:
        volumes = await self.run(lambda docker: docker.volumes.list())
        return volumes.get("Volumes") or []

    def volume(self, name: str) -> VolumeHandle:
        return VolumeHandle(self, name)
