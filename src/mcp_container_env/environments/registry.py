"""In-memory registry of environments known to this process."""
from typing import Any, Dict, Mapping, Optional, Union

from mcp_container_env.types import EnvironmentDefinition
from mcp_container_env.environments.environment import Environment
from mcp_container_env.errors import ConfigurationError
from mcp_container_env.logging import get_logger

logger = get_logger(__name__)

_ENVIRONMENTS: Dict[str, Environment] = {}


def register_environment(
    definition: Union[EnvironmentDefinition, Mapping[str, Any]],
    client: Optional[Any] = None,
    log_ref: Optional[Any] = None,
) -> Environment:
    """Build an environment from its declarative definition and track it by id."""
    env = Environment(definition, client=client, log_ref=log_ref)
    if env.id in _ENVIRONMENTS:
        raise ConfigurationError(
            f"Environment {env.id} is already registered",
            details={"env_id": env.id},
        )

    _ENVIRONMENTS[env.id] = env
    logger.info("environment_registered", env_id=env.id, instances=len(env.instances))
    return env


def get_environment(env_id: str) -> Optional[Environment]:
    """Get environment by ID."""
    return _ENVIRONMENTS.get(env_id)


def list_environments() -> list[str]:
    return list(_ENVIRONMENTS)


async def release_environment(env: Environment) -> None:
    """Stop tracking an environment and close its client."""
    _ENVIRONMENTS.pop(env.id, None)
    await env.close()
    logger.debug("environment_released", env_id=env.id)
