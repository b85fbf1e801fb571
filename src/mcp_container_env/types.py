"""Core type definitions"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from mcp_container_env.errors import ConfigurationError

COMPOSE_PROJECT_LABEL = "com.docker.compose.project"


class Status(str, Enum):
    """Instance and environment statuses"""
    START = "start"
    STARTED = "started"
    STOP = "stop"
    STOPPED = "stopped"
    PAUSE = "pause"
    PAUSED = "paused"
    UNPAUSE = "unpause"
    UNPAUSED = "unpaused"
    EXITED = "exited"
    TERMINATE = "terminate"
    TERMINATED = "terminated"
    WARNING = "warning"
    FATAL = "fatal"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DockerNodeConfig:
    """Connection parameters for the remote Docker host"""
    host: str | None = None
    port: int | str | None = None
    protocol: str = "https"
    timeout: float = 0
    ca: str | None = None
    cert: str | None = None
    key: str | None = None
    check_hostname: bool = True

    @classmethod
    def from_dict(cls, node: Mapping[str, Any]) -> "DockerNodeConfig":
        certs = node.get("certs") or {}
        not_check = node.get("notCheckServerCa", node.get("not_check_server_ca", False))
        return cls(
            host=node.get("ip", node.get("host")),
            port=node.get("port"),
            protocol=node.get("protocol") or "https",
            timeout=node.get("timeout") or 0,
            ca=certs.get("ca"),
            cert=certs.get("cert"),
            key=certs.get("key"),
            check_hostname=not not_check,
        )

    @property
    def url(self) -> str:
        if self.port is None:
            return f"{self.protocol}://{self.host}"
        return f"{self.protocol}://{self.host}:{self.port}"


@dataclass(frozen=True)
class InstanceDefinition:
    """Declared instance of an environment"""
    id: str | None
    type: str = "docker"
    container: str | None = None
    status: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, instance: Mapping[str, Any]) -> "InstanceDefinition":
        known = {"id", "type", "container", "status"}
        return cls(
            id=instance.get("id"),
            type=instance.get("type") or "docker",
            container=instance.get("container"),
            status=instance.get("status"),
            extra={k: v for k, v in instance.items() if k not in known},
        )


@dataclass(frozen=True)
class EnvironmentDefinition:
    """Declarative description an Environment is built from"""
    id: str
    instances: tuple[InstanceDefinition, ...] = ()
    docker_node: DockerNodeConfig = field(default_factory=DockerNodeConfig)

    @classmethod
    def from_dict(cls, environment: Mapping[str, Any]) -> "EnvironmentDefinition":
        env_id = environment.get("id")
        if not env_id:
            raise ConfigurationError("Environment definition is missing an id")

        node = environment.get("dockerNode", environment.get("docker_node")) or {}
        return cls(
            id=env_id,
            instances=tuple(
                InstanceDefinition.from_dict(instance)
                for instance in environment.get("instances") or []
            ),
            docker_node=DockerNodeConfig.from_dict(node),
        )


@dataclass(frozen=True)
class CleanupFailure:
    """Failure absorbed by a best-effort cleanup stage"""
    stage: str
    resource_id: str | None
    error: str


@dataclass
class CleanupResult:
    """Outcome of one termination stage"""
    stage: str
    removed: list[str] = field(default_factory=list)
    failures: list[CleanupFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class TerminationReport:
    """Outcome of a full termination cascade"""
    env_id: str
    stages: list[CleanupResult] = field(default_factory=list)

    @property
    def status(self) -> Status:
        return Status.TERMINATED

    @property
    def failures(self) -> list[CleanupFailure]:
        return [failure for stage in self.stages for failure in stage.failures]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "stages": [
                {
                    "stage": stage.stage,
                    "removed": stage.removed,
                    "failures": [
                        {"resource_id": f.resource_id, "error": f.error}
                        for f in stage.failures
                    ],
                }
                for stage in self.stages
            ],
        }
