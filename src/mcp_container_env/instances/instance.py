"""Instance backend selection."""

from typing import Dict, Protocol, Type

from mcp_container_env.types import InstanceDefinition, Status
from mcp_container_env.errors import ConfigurationError
from mcp_container_env.instances.docker import DockerInstance
from mcp_container_env.instances.mock import MockInstance


class Instance(Protocol):
    """Capability every instance backend provides."""

    async def get_status(self) -> Status: ...

    async def pause(self) -> Status: ...

    async def unpause(self) -> Status: ...


# Map of declared instance types to backends
INSTANCE_TYPES: Dict[str, Type[Instance]] = {
    "docker": DockerInstance,
    "mock": MockInstance,
}


def create_instance(definition: InstanceDefinition, client) -> Instance:
    """Build the backend for a declared instance."""
    backend = INSTANCE_TYPES.get(definition.type)
    if backend is None:
        raise ConfigurationError(
            f"Unsupported instance type: {definition.type}",
            details={"instance_id": definition.id, "type": definition.type},
        )
    return backend(definition, client)
