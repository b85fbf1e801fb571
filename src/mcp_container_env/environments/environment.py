"""Environment lifecycle management.

An environment is a named group of container-backed instances on a Docker
node. It reports one aggregate status for the group, applies pause/unpause to
every instance at once, and on termination reclaims every remote resource that
belongs to it by naming convention: containers by compose project label,
networks and volumes by name prefix, then the environment's log.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Iterable, List, Mapping, Optional, Tuple, Union

from mcp_container_env.types import (
    COMPOSE_PROJECT_LABEL,
    CleanupFailure,
    CleanupResult,
    EnvironmentDefinition,
    Status,
    TerminationReport,
)
from mcp_container_env.docker.client import DockerResourceClient
from mcp_container_env.errors import ActionFailedError, log_error
from mcp_container_env.instances.instance import Instance, create_instance
from mcp_container_env.logging import get_logger

logger = get_logger(__name__)


def aggregate_status(statuses: Iterable[Status]) -> Status:
    """Reduce per-instance statuses, in declaration order, to one status.

    Exited instances are ignored. With nothing else left the environment is
    ``fatal``; any disagreement among the rest makes it ``warning``.
    """
    candidate = None
    for status in statuses:
        if status == Status.EXITED:
            continue
        if candidate is None:
            candidate = status
        elif status != candidate:
            return Status.WARNING

    return Status.FATAL if candidate is None else candidate


class Environment:
    """A group of instances controlled and reclaimed as a unit."""

    def __init__(
        self,
        definition: Union[EnvironmentDefinition, Mapping[str, Any]],
        client: Optional[Any] = None,
        log_ref: Optional[Any] = None,
    ):
        if not isinstance(definition, EnvironmentDefinition):
            definition = EnvironmentDefinition.from_dict(definition)

        self.definition = definition
        self.id = definition.id
        self._owns_client = client is None
        self.client = client if client is not None else DockerResourceClient(definition.docker_node)
        self.instances: Tuple[Instance, ...] = tuple(
            create_instance(instance, self.client) for instance in definition.instances
        )
        self.log_ref = log_ref

        self._lock = asyncio.Lock()
        self._log = logger.bind(env_id=self.id)

    async def __aenter__(self) -> "Environment":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the Docker client if this environment created it."""
        if self._owns_client:
            await self.client.close()

    async def get_status(self) -> Status:
        statuses = await asyncio.gather(
            *(instance.get_status() for instance in self.instances)
        )
        status = aggregate_status(statuses)
        self._log.debug("environment_status", status=str(status), instances=[str(s) for s in statuses])
        return status

    async def pause(self) -> Status:
        async with self._lock:
            return await self._process("pause", Status.PAUSED)

    async def unpause(self) -> Status:
        async with self._lock:
            return await self._process("unpause", Status.UNPAUSED)

    async def _process(self, action: str, expected: Status) -> Status:
        """Apply ``action`` to every instance and require ``expected`` from all.

        All instances are driven to completion before deciding. A divergent
        status fails the call with ActionFailedError; otherwise the first
        instance error is re-raised. Instances that did transition are left
        as they are.
        """
        results = await asyncio.gather(
            *(getattr(instance, action)() for instance in self.instances),
            return_exceptions=True,
        )

        errors = [result for result in results if isinstance(result, BaseException)]
        statuses = [result for result in results if not isinstance(result, BaseException)]

        if any(status != expected for status in statuses):
            self._log.warning(
                "environment_action_diverged",
                action=action,
                expected=str(expected),
                statuses=[str(s) for s in statuses],
                errors=len(errors),
            )
            raise ActionFailedError(action, expected.value, statuses)

        if errors:
            self._log.warning("environment_action_failed", action=action, errors=len(errors))
            raise errors[0]

        self._log.info("environment_action_applied", action=action, status=str(expected))
        return expected

    async def terminate(self) -> Status:
        report = await self.reclaim()
        return report.status

    async def reclaim(self) -> TerminationReport:
        """Run the termination cascade and report what was absorbed.

        Stages run one after another: containers, networks, volumes, log.
        Failures in the first three are logged and recorded on the report;
        a failure removing the log propagates.
        """
        async with self._lock:
            report = TerminationReport(env_id=self.id)

            self._log.info("cleaning_containers")
            report.stages.append(await self._clean_containers())

            self._log.info("cleaning_networks")
            report.stages.append(await self._clean_networks())

            self._log.info("cleaning_volumes")
            report.stages.append(await self._clean_volumes())

            self._log.info("cleaning_logs")
            report.stages.append(await self._clean_logs())

        self._log.info("environment_terminated", absorbed_failures=len(report.failures))
        return report

    def _absorb(self, result: CleanupResult, resource_id: Optional[str], error: BaseException) -> None:
        log_error(
            error,
            context={"env_id": self.id, "stage": result.stage, "resource_id": resource_id},
            logger=self._log,
        )
        result.failures.append(
            CleanupFailure(result.stage, resource_id, str(error) or error.__class__.__name__)
        )

    async def _remove_all(
        self, result: CleanupResult, removals: List[Tuple[str, Awaitable[Any]]]
    ) -> None:
        outcomes = await asyncio.gather(
            *(removal for _, removal in removals), return_exceptions=True
        )
        for (resource_id, _), outcome in zip(removals, outcomes):
            if isinstance(outcome, Exception):
                self._absorb(result, resource_id, outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.removed.append(resource_id)

    async def _clean_containers(self) -> CleanupResult:
        result = CleanupResult(stage="containers")
        try:
            containers = await self.client.list_containers(
                all=True,
                filters={"label": [f"{COMPOSE_PROJECT_LABEL}={self.id}"]},
            )
            container_ids = [container["Id"] for container in containers]
        except Exception as e:
            self._absorb(result, None, e)
            return result

        await self._remove_all(result, [
            (container_id, self.client.container(container_id).remove(force=True))
            for container_id in container_ids
        ])
        return result

    async def _clean_networks(self) -> CleanupResult:
        result = CleanupResult(stage="networks")
        try:
            networks = await self.client.list_networks()
            network_ids = [
                network["Id"]
                for network in networks
                if (network.get("Name") or "").startswith(self.id)
            ]
        except Exception as e:
            self._absorb(result, None, e)
            return result

        await self._remove_all(result, [
            (network_id, self.client.network(network_id).remove())
            for network_id in network_ids
        ])
        return result

    async def _clean_volumes(self) -> CleanupResult:
        result = CleanupResult(stage="volumes")
        try:
            volumes = await self.client.list_volumes()
            names = [
                volume["Name"]
                for volume in volumes
                if (volume.get("Name") or "").startswith(self.id)
            ]
        except Exception as e:
            self._absorb(result, None, e)
            return result

        await self._remove_all(result, [
            (name, self.client.volume(name).remove()) for name in names
        ])
        return result

    async def _clean_logs(self) -> CleanupResult:
        result = CleanupResult(stage="logs")
        if self.log_ref is None:
            return result

        remove = getattr(self.log_ref, "remove", None) or self.log_ref.delete
        outcome = remove()
        if inspect.isawaitable(outcome):
            await outcome
        result.removed.append(self.id)
        return result
