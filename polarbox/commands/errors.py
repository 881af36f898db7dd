"""
Typed error classes for polarbox.

This module provides the error hierarchy used by the orchestration engine:
- PolarboxError: Base exception for all polarbox errors
- NotFoundError: A network or node does not exist
- ContainerRuntimeError: A Docker operation (or a command run through it) failed
- DomainConfigError: A workflow precondition does not hold
- PersistenceError: Reading or writing the network store or config failed
- ReadinessTimeoutError: A node did not reach the expected state in time
"""

from typing import Any, Optional

from polarbox.commands.constants import (
    ERROR_DELETE_BITCOIN_NODE,
    ERROR_NETWORK_EXISTS,
    ERROR_NETWORK_NOT_FOUND,
    ERROR_NODE_NOT_FOUND,
    ERROR_NODE_NOT_RUNNING,
)


class PolarboxError(Exception):
    """Base exception class for all polarbox errors.

    Attributes:
        message: Human-readable error message
        code: Optional error code for programmatic handling
        details: Optional dictionary with additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for serialization."""
        result: dict[str, Any] = {
            "type": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class NotFoundError(PolarboxError):
    """A network or node could not be found."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code=code or "NOT_FOUND", details=details)


class NetworkNotFoundError(NotFoundError):
    """Raised when no network with the given name is registered."""

    def __init__(self, network_name: str):
        self.network_name = network_name
        super().__init__(
            ERROR_NETWORK_NOT_FOUND.format(name=network_name),
            code="NETWORK_NOT_FOUND",
            details={"network": network_name},
        )


class NodeNotFoundError(NotFoundError):
    """Raised when a node name does not resolve inside a network."""

    def __init__(self, node_name: str, network_name: Optional[str] = None):
        self.node_name = node_name
        self.network_name = network_name
        details = {"node": node_name}
        message = f"Node '{node_name}' not found"
        if network_name:
            details["network"] = network_name
            message = ERROR_NODE_NOT_FOUND.format(node=node_name, network=network_name)
        super().__init__(
            message,
            code="NODE_NOT_FOUND",
            details=details,
        )


class ContainerRuntimeError(PolarboxError):
    """Docker operation failures.

    Raised when:
    - The Docker daemon is unreachable
    - Creating, starting, stopping or removing a container fails
    - Creating or removing a Docker network fails
    - An image cannot be pulled
    """

    def __init__(
        self,
        message: str,
        container_id: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.container_id = container_id
        details = details or {}
        if container_id:
            details["container_id"] = container_id
        super().__init__(
            message, code=code or "CONTAINER_RUNTIME_ERROR", details=details
        )


class ContainerNotFoundError(ContainerRuntimeError):
    """Raised when Docker reports that a container does not exist."""

    def __init__(self, message: str, container_id: Optional[str] = None):
        super().__init__(
            message, container_id=container_id, code="CONTAINER_NOT_FOUND"
        )


class RpcCommandError(ContainerRuntimeError):
    """Raised when a CLI command exec'd inside a container exits non-zero.

    The raw combined output is kept so callers can tell, for example, an
    insufficient-funds rejection from a malformed response.
    """

    def __init__(
        self,
        message: str,
        container_id: Optional[str] = None,
        command: Optional[list[str]] = None,
        exit_code: Optional[int] = None,
        output: str = "",
    ):
        self.command = command or []
        self.exit_code = exit_code
        self.output = output
        details: dict[str, Any] = {"output": output}
        if command:
            details["command"] = " ".join(command)
        if exit_code is not None:
            details["exit_code"] = exit_code
        super().__init__(
            message,
            container_id=container_id,
            code="RPC_COMMAND_FAILED",
            details=details,
        )


class DomainConfigError(PolarboxError):
    """Workflow precondition errors.

    Raised when:
    - A network or node is not in a state the workflow requires
    - A node's RPC response cannot be interpreted
    - A forbidden topology change is requested
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code=code or "DOMAIN_CONFIG_ERROR", details=details)


class NetworkExistsError(DomainConfigError):
    """Raised when creating a network whose name is already taken."""

    def __init__(self, network_name: str):
        self.network_name = network_name
        super().__init__(
            ERROR_NETWORK_EXISTS.format(name=network_name),
            code="NETWORK_EXISTS",
            details={"network": network_name},
        )


class NodeNotRunningError(DomainConfigError):
    """Raised when an RPC is attempted against a node without a container."""

    def __init__(self, node_name: str):
        self.node_name = node_name
        super().__init__(
            ERROR_NODE_NOT_RUNNING.format(node=node_name),
            code="NODE_NOT_RUNNING",
            details={"node": node_name},
        )


class InsufficientFundsError(DomainConfigError):
    """Raised when the Bitcoin node cannot cover a funding request."""

    def __init__(self, available: float, required: float):
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient balance in Bitcoin node. Have: {available} BTC, "
            f"Need: {required} BTC. Try mining blocks first.",
            code="INSUFFICIENT_FUNDS",
            details={"available": available, "required": required},
        )


class RpcResponseError(DomainConfigError):
    """Raised when a node's CLI output does not match the expected schema."""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(
            message, code="RPC_RESPONSE_INVALID", details={"output": output}
        )


class ForbiddenDeletionError(DomainConfigError):
    """Raised when deleting the network's mandatory Bitcoin node."""

    def __init__(self, node_name: str):
        self.node_name = node_name
        super().__init__(
            ERROR_DELETE_BITCOIN_NODE.format(node=node_name),
            code="FORBIDDEN_DELETION",
            details={"node": node_name},
        )


class PersistenceError(PolarboxError):
    """Errors reading or writing persisted state (network store, config file)."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.path = path
        details = details or {}
        if path:
            details["path"] = path
        super().__init__(message, code="PERSISTENCE_ERROR", details=details)


class ReadinessTimeoutError(PolarboxError):
    """Raised when a polled condition does not hold before the deadline."""

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.timeout_seconds = timeout_seconds
        details = details or {}
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(message, code="READINESS_TIMEOUT", details=details)


__all__ = [
    "PolarboxError",
    "NotFoundError",
    "NetworkNotFoundError",
    "NodeNotFoundError",
    "ContainerRuntimeError",
    "ContainerNotFoundError",
    "RpcCommandError",
    "DomainConfigError",
    "NetworkExistsError",
    "NodeNotRunningError",
    "InsufficientFundsError",
    "RpcResponseError",
    "ForbiddenDeletionError",
    "PersistenceError",
    "ReadinessTimeoutError",
]
