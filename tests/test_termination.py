import pytest
from unittest.mock import AsyncMock, MagicMock

from aiodocker.exceptions import DockerError

from conftest import FakeResourceClient, mock_env
from mcp_container_env.environments.environment import Environment
from mcp_container_env.types import Status


def make_env(client, log_ref=None) -> Environment:
    return Environment(mock_env("start"), client=client, log_ref=log_ref)


@pytest.mark.asyncio
async def test_terminate_removes_labelled_container():
    """Test the compose-labelled container is force removed"""
    client = FakeResourceClient(containers=[{"Id": "c1"}])
    env = make_env(client)

    assert await env.terminate() == Status.TERMINATED

    client.list_containers.assert_awaited_once_with(
        all=True, filters={"label": ["com.docker.compose.project=env1"]}
    )
    client.container("c1").remove.assert_awaited_once_with(force=True)


@pytest.mark.asyncio
async def test_clean_networks_without_matches():
    client = FakeResourceClient(networks=[])
    result = await make_env(client)._clean_networks()

    assert result.ok
    assert result.removed == []


@pytest.mark.asyncio
async def test_clean_networks_filters_by_name_prefix():
    """Test only networks named after the environment are removed"""
    client = FakeResourceClient(networks=[
        {"Id": "id1", "Name": "env1_network1"},
        {"Id": "id2", "Name": "other_network"},
    ])
    result = await make_env(client)._clean_networks()

    client.network("id1").remove.assert_awaited_once()
    assert ("network", "id2") not in client.handles
    assert result.removed == ["id1"]


@pytest.mark.asyncio
async def test_clean_volumes_without_matches():
    client = FakeResourceClient(volumes=[])
    result = await make_env(client)._clean_volumes()

    assert result.ok
    assert result.removed == []


@pytest.mark.asyncio
async def test_clean_volumes_filters_by_name_prefix():
    client = FakeResourceClient(volumes=[{"Name": "env1_volume1"}, {"Name": "env2_volume1"}])
    result = await make_env(client)._clean_volumes()

    client.volume("env1_volume1").remove.assert_awaited_once()
    assert ("volume", "env2_volume1") not in client.handles
    assert result.removed == ["env1_volume1"]


@pytest.mark.asyncio
async def test_terminate_runs_stages_in_order(log_ref, resource_client):
    """Test containers, networks, volumes, then log"""
    resource_client.list_containers.side_effect = lambda **kwargs: (
        resource_client.calls.append("list_containers") or [{"Id": "c1"}, {"Id": "c2"}]
    )
    resource_client.list_networks.side_effect = lambda: (
        resource_client.calls.append("list_networks") or [{"Id": "n1", "Name": "env1_default"}]
    )
    resource_client.list_volumes.side_effect = lambda: (
        resource_client.calls.append("list_volumes") or [{"Name": "env1_data"}]
    )
    env = make_env(resource_client, log_ref=log_ref)

    assert await env.terminate() == "terminated"

    assert resource_client.calls == [
        "list_containers",
        ("remove_container", "c1"),
        ("remove_container", "c2"),
        "list_networks",
        ("remove_network", "n1"),
        "list_volumes",
        ("remove_volume", "env1_data"),
        "remove_log",
    ]


@pytest.mark.asyncio
async def test_container_listing_failure_is_absorbed():
    """Test later stages still run when containers cannot be listed"""
    client = FakeResourceClient(
        networks=[{"Id": "n1", "Name": "env1_default"}],
        volumes=[{"Name": "env1_data"}],
    )
    client.list_containers.side_effect = DockerError(500, {"message": "daemon unavailable"})
    env = make_env(client)

    report = await env.reclaim()

    assert report.status == Status.TERMINATED
    client.network("n1").remove.assert_awaited_once()
    client.volume("env1_data").remove.assert_awaited_once()
    assert len(report.failures) == 1
    assert report.failures[0].stage == "containers"
    assert report.failures[0].resource_id is None
    assert "daemon unavailable" in report.failures[0].error


@pytest.mark.asyncio
async def test_container_removal_failure_does_not_stop_others():
    client = FakeResourceClient(containers=[{"Id": "c1"}, {"Id": "c2"}, {"Id": "c3"}])
    client.container("c2").remove.side_effect = DockerError(409, {"message": "removal in progress"})
    env = make_env(client)

    report = await env.reclaim()
    containers = report.stages[0]

    for container_id in ("c1", "c2", "c3"):
        client.container(container_id).remove.assert_awaited_once_with(force=True)
    assert containers.removed == ["c1", "c3"]
    assert [f.resource_id for f in containers.failures] == ["c2"]
    assert await env.terminate() == Status.TERMINATED


@pytest.mark.asyncio
async def test_network_and_volume_failures_are_absorbed():
    client = FakeResourceClient(
        networks=[{"Id": "n1", "Name": "env1_a"}, {"Id": "n2", "Name": "env1_b"}],
    )
    client.network("n1").remove.side_effect = DockerError(403, {"message": "has active endpoints"})
    client.list_volumes.side_effect = TimeoutError()
    env = make_env(client)

    report = await env.reclaim()

    networks, volumes = report.stages[1], report.stages[2]
    assert networks.removed == ["n2"]
    assert [f.resource_id for f in networks.failures] == ["n1"]
    assert volumes.failures[0].error == "TimeoutError"
    assert report.status == Status.TERMINATED


@pytest.mark.asyncio
async def test_terminate_without_log_ref(resource_client):
    report = await make_env(resource_client).reclaim()

    assert [stage.stage for stage in report.stages] == ["containers", "networks", "volumes", "logs"]
    assert report.stages[-1].removed == []
    assert report.failures == []


@pytest.mark.asyncio
async def test_async_log_ref_is_awaited(resource_client):
    log_ref = MagicMock()
    log_ref.remove = AsyncMock()

    assert await make_env(resource_client, log_ref=log_ref).terminate() == Status.TERMINATED
    log_ref.remove.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_only_log_ref(resource_client):
    """Test a log service exposing only delete() is reclaimed"""
    class LogService:
        def __init__(self):
            self.deleted = False

        async def delete(self):
            self.deleted = True

    log_ref = LogService()
    report = await make_env(resource_client, log_ref=log_ref).reclaim()

    assert log_ref.deleted
    assert report.stages[-1].removed == ["env1"]


@pytest.mark.asyncio
async def test_log_removal_failure_propagates(resource_client):
    """Test log cleanup is the one stage that is not swallowed"""
    resource_client.list_containers.side_effect = DockerError(500, {"message": "down"})
    log_ref = MagicMock()
    log_ref.remove = AsyncMock(side_effect=RuntimeError("log service unavailable"))

    with pytest.raises(RuntimeError, match="log service unavailable"):
        await make_env(resource_client, log_ref=log_ref).terminate()

    resource_client.list_networks.assert_awaited_once()
    resource_client.list_volumes.assert_awaited_once()


@pytest.mark.asyncio
async def test_report_to_dict():
    client = FakeResourceClient(containers=[{"Id": "c1"}])
    report = await make_env(client).reclaim()

    assert report.to_dict() == {
        "status": "terminated",
        "stages": [
            {"stage": "containers", "removed": ["c1"], "failures": []},
            {"stage": "networks", "removed": [], "failures": []},
            {"stage": "volumes", "removed": [], "failures": []},
            {"stage": "logs", "removed": [], "failures": []},
        ],
    }
