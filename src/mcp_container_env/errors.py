"""Error handling for the container environment server."""
from typing import Any, Dict, Optional, Sequence

from mcp.types import (
    ErrorData,
    INVALID_REQUEST,
    INVALID_PARAMS,
    INTERNAL_ERROR
)
import structlog


def log_error(
    error: BaseException,
    context: Optional[Dict[str, Any]] = None,
    logger: Optional[Any] = None
) -> None:
    """Log an error with context."""
    logger = logger or structlog.get_logger(__name__)

    error_info = {
        "error_type": error.__class__.__name__,
        "error_message": str(error)
    }
    if context:
        error_info["context"] = context
    if isinstance(error, ContainerEnvError):
        error_info["code"] = error.code
        error_info["details"] = error.details

    logger.error("error_occurred", **error_info)


class ContainerEnvError(Exception):
    """Base error class for container environments."""
    def __init__(
        self,
        message: str,
        code: int = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_error_data(self) -> ErrorData:
        """Convert to ErrorData format."""
        return ErrorData(
            code=self.code,
            message=str(self),
            data=self.details
        )


class ConfigurationError(ContainerEnvError):
    """Invalid declarative environment input."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=INVALID_PARAMS, details=details)


class InvalidEnvError(ContainerEnvError):
    """Error for invalid/missing environment."""
    def __init__(self, env_id: str):
        super().__init__(
            f"Environment {env_id} not found",
            code=INVALID_PARAMS,
            details={"env_id": env_id}
        )


class InstanceStateError(ContainerEnvError):
    """Instance is already in the requested state."""
    def __init__(self, instance_id: Optional[str], result: str):
        super().__init__(
            f"instance already {result}",
            code=INVALID_REQUEST,
            details={"instance_id": instance_id, "status": result}
        )


class ActionFailedError(ContainerEnvError):
    """Group action did not bring every instance to the expected status."""
    def __init__(self, action: str, expected: str, statuses: Sequence[Any] = ()):
        super().__init__(
            f"{action} failed: not every instance reached {expected}",
            code=INTERNAL_ERROR,
            details={
                "action": action,
                "expected": expected,
                "statuses": [str(status) for status in statuses],
            }
        )
