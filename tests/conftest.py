import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from mcp_container_env.environments import registry
from mcp_container_env.environments.environment import Environment


class FakeHandle:
    """Container/network/volume handle recording removals on the client."""

    def __init__(self, calls: list, kind: str, resource_id: str):
        self.id = resource_id
        self.inspect = AsyncMock(return_value={"State": {"Running": True, "Status": "running"}})
        self.pause = AsyncMock()
        self.unpause = AsyncMock()
        self.remove = AsyncMock(
            side_effect=lambda **kwargs: calls.append((f"remove_{kind}", resource_id))
        )


class FakeResourceClient:
    """Stand-in for DockerResourceClient that records call order."""

    def __init__(self, containers=(), networks=(), volumes=()):
        self.calls = []
        self.handles = {}
        self.list_containers = AsyncMock(side_effect=self._listing("list_containers", list(containers)))
        self.list_networks = AsyncMock(side_effect=self._listing("list_networks", list(networks)))
        self.list_volumes = AsyncMock(side_effect=self._listing("list_volumes", list(volumes)))
        self.close = AsyncMock()

    def _listing(self, name, items):
        def record(*args, **kwargs):
            self.calls.append(name)
            return items
        return record

    def _handle(self, kind, resource_id) -> FakeHandle:
        key = (kind, resource_id)
        if key not in self.handles:
            self.handles[key] = FakeHandle(self.calls, kind, resource_id)
        return self.handles[key]

    def container(self, container_id) -> FakeHandle:
        return self._handle("container", container_id)

    def network(self, network_id) -> FakeHandle:
        return self._handle("network", network_id)

    def volume(self, name) -> FakeHandle:
        return self._handle("volume", name)


def mock_env(*statuses, env_id="env1"):
    """Definition of an environment made of mock instances."""
    return {
        "id": env_id,
        "instances": [
            {"type": "mock", "id": f"inst{i}", "status": status}
            for i, status in enumerate(statuses, start=1)
        ],
    }


@pytest.fixture
def resource_client():
    return FakeResourceClient()


@pytest.fixture
def log_ref(resource_client):
    """Log collaborator whose removal is recorded alongside client calls."""
    ref = MagicMock()
    ref.remove = MagicMock(side_effect=lambda: resource_client.calls.append("remove_log"))
    return ref


@pytest_asyncio.fixture
async def environment(resource_client):
    """Single running mock instance environment"""
    env = Environment(mock_env("start"), client=resource_client)
    try:
        yield env
    finally:
        await env.close()


@pytest.fixture(autouse=True)
def clean_registry():
    yield
    registry._ENVIRONMENTS.clear()
