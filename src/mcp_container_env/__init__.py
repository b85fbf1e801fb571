"""MCP Container Environment package."""

__version__ = "0.1.0"

from mcp_container_env.types import (
    Status,
    DockerNodeConfig,
    InstanceDefinition,
    EnvironmentDefinition,
    CleanupFailure,
    CleanupResult,
    TerminationReport,
)
from mcp_container_env.errors import (
    ContainerEnvError,
    ConfigurationError,
    InvalidEnvError,
    InstanceStateError,
    ActionFailedError,
)
from mcp_container_env.environments.environment import Environment, aggregate_status

__all__ = [
    # Types
    "Status",
    "DockerNodeConfig",
    "InstanceDefinition",
    "EnvironmentDefinition",

    # Termination results
    "CleanupFailure",
    "CleanupResult",
    "TerminationReport",

    # Environments
    "Environment",
    "aggregate_status",

    # Error types
    "ContainerEnvError",
    "ConfigurationError",
    "InvalidEnvError",
    "InstanceStateError",
    "ActionFailedError",
]
