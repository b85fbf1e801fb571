"""Docker container instance backend."""

from typing import Any, Dict

from mcp_container_env.types import InstanceDefinition, Status
from mcp_container_env.errors import ConfigurationError
from mcp_container_env.logging import get_logger

logger = get_logger(__name__)


def status_from_state(state: Dict[str, Any]) -> Status:
    """Map a container's inspected State to an instance status."""
    if state.get("Paused"):
        return Status.PAUSE
    if state.get("Running"):
        return Status.START
    if state.get("Status") == "exited":
        return Status.EXITED
    return Status.STOP


class DockerInstance:
    """Instance backed by a single container on the Docker node."""

    def __init__(self, definition: InstanceDefinition, client):
        self.definition = definition
        self.container_id = definition.container or definition.id
        if not self.container_id:
            raise ConfigurationError("Docker instance is missing a container id")
        self.container = client.container(self.container_id)

    @property
    def id(self) -> str:
        return self.definition.id or self.container_id

    async def _state(self) -> Dict[str, Any]:
        info = await self.container.inspect()
        return info.get("State") or {}

    async def get_status(self) -> Status:
        logger.debug("instance_status_requested", container_id=self.container_id)
        return status_from_state(await self._state())

    async def pause(self) -> Status:
        state = await self._state()
        if state.get("Status") == "exited":
            logger.debug("instance_pause_skipped", container_id=self.container_id)
            return Status.PAUSED

        await self.container.pause()
        logger.debug("instance_paused", container_id=self.container_id)
        return Status.PAUSED

    async def unpause(self) -> Status:
        state = await self._state()
        if state.get("Status") == "exited":
            logger.debug("instance_unpause_skipped", container_id=self.container_id)
            return Status.UNPAUSED

        await self.container.unpause()
        logger.debug("instance_unpaused", container_id=self.container_id)
        return Status.UNPAUSED
