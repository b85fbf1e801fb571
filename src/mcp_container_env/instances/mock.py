"""In-memory instance backend with an explicit state machine."""

from mcp_container_env.types import InstanceDefinition, Status
from mcp_container_env.errors import ConfigurationError, InstanceStateError


class MockInstance:
    """Instance whose status lives in memory; used for tests and dry runs."""

    def __init__(self, definition: InstanceDefinition, client=None):
        self.definition = definition
        try:
            self.status = Status(definition.status or Status.START)
        except ValueError:
            raise ConfigurationError(
                f"Unknown instance status: {definition.status}",
                details={"instance_id": definition.id},
            ) from None

    @property
    def id(self) -> str | None:
        return self.definition.id

    async def get_status(self) -> Status:
        return self.status

    async def _transition(self, status: Status, result: Status) -> Status:
        if self.status == status:
            raise InstanceStateError(self.id, result.value)
        self.status = status
        return result

    async def start(self) -> Status:
        return await self._transition(Status.START, Status.STARTED)

    async def stop(self) -> Status:
        return await self._transition(Status.STOP, Status.STOPPED)

    async def pause(self) -> Status:
        return await self._transition(Status.PAUSE, Status.PAUSED)

    async def unpause(self) -> Status:
        return await self._transition(Status.UNPAUSE, Status.UNPAUSED)

    async def terminate(self) -> Status:
        return await self._transition(Status.TERMINATE, Status.TERMINATED)
