"""
NodeDriver - shared behaviour for node kinds.

A driver binds one Node record to the container runtime. It knows how to
start and stop the node's container and how to issue CLI RPC calls inside
it. Each NodeKind has exactly one driver subclass.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from polarbox.commands.constants import (
    LABEL_NETWORK,
    LABEL_NODE,
    LABEL_NODE_KIND,
)
from polarbox.commands.errors import (
    ContainerNotFoundError,
    NodeNotRunningError,
    RpcCommandError,
    RpcResponseError,
)
from polarbox.commands.models import Network, Node, NodeKind, PortConfig
from polarbox.commands.polling import poll_until
from polarbox.commands.ports import docker_port_bindings

logger = logging.getLogger(__name__)


class NodeDriver(ABC):
    """Start, stop and talk to one node's container."""

    kind: NodeKind
    container_prefix: str
    default_image: str

    def __init__(self, network: Network, node: Node, runtime):
        """
        Args:
            network: The network the node belongs to.
            node: The node record; its ``container_id`` is updated in place.
            runtime: A ContainerManager (or anything with the same methods).
        """
        self.network = network
        self.node = node
        self.runtime = runtime

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def container_name(self) -> str:
        return self.container_name_for(self.node)

    @classmethod
    def container_name_for(cls, node: Node) -> str:
        return f"{cls.container_prefix}-{node.id}"

    @property
    def image(self) -> str:
        return self.default_image

    @property
    def container_id(self) -> str:
        """The running container's id.

        Raises:
            NodeNotRunningError: If the node has no container.
        """
        if self.node.container_id is None:
            raise NodeNotRunningError(self.node.name)
        return self.node.container_id

    # Lifecycle

    @abstractmethod
    def build_command(self) -> list[str]:
        """Command line the node's daemon is started with."""

    @abstractmethod
    def is_ready(self) -> bool:
        """Whether the daemon answers RPC calls."""

    def after_start(self) -> None:
        """Hook run once the container is up."""

    def labels(self) -> dict[str, str]:
        return {
            LABEL_NETWORK: self.network.name,
            LABEL_NODE: self.node.name,
            LABEL_NODE_KIND: self.kind.value,
        }

    def start(self, ports: PortConfig) -> str:
        """Create and start the node's container on the network's Docker network.

        Returns:
            The container id, also recorded on the node.
        """
        container_id = self.runtime.create_container(
            name=self.container_name,
            image=self.image,
            command=self.build_command(),
            ports=docker_port_bindings(ports),
            network=self.network.docker_network_name,
            labels=self.labels(),
        )
        # recorded first; stop() must be able to remove a container that failed to start
        self.node.container_id = container_id
        self.runtime.start_container(container_id)
        logger.info("Started %s as %s", self.node.name, self.container_name)
        self.after_start()
        return container_id

    def stop(self) -> None:
        """Stop and remove the node's container, if it has one.

        A container that no longer exists is treated as already removed.
        """
        container_id = self.node.container_id
        if container_id is None:
            return
        try:
            self.runtime.stop_container(container_id)
        except ContainerNotFoundError:
            logger.debug("Container for %s already gone", self.node.name)
        try:
            self.runtime.remove_container(container_id)
        except ContainerNotFoundError:
            pass
        self.node.container_id = None
        logger.info("Stopped %s", self.node.name)

    def wait_until_ready(self, timeout: float, interval: Optional[float] = None) -> None:
        """Poll ``is_ready`` until it holds.

        Raises:
            ReadinessTimeoutError: If the node is not ready within ``timeout``.
        """
        kwargs = {} if interval is None else {"interval": interval}
        poll_until(
            self.is_ready,
            timeout=timeout,
            description=f"{self.node.name} RPC",
            **kwargs,
        )

    # RPC plumbing

    @abstractmethod
    def cli(self) -> list[str]:
        """The CLI prefix (binary plus connection flags) used for RPC calls."""

    def run(self, *args: str) -> str:
        """Run a CLI RPC call and return its raw output.

        Raises:
            NodeNotRunningError: If the node has no container.
            RpcCommandError: If the command exits non-zero.
        """
        container_id = self.container_id
        command = self.cli() + [str(arg) for arg in args]
        result = self.runtime.exec_command(container_id, command)
        if result.exit_code != 0:
            raise RpcCommandError(
                f"{args[0] if args else command[0]} failed on {self.node.name} "
                f"(exit {result.exit_code}): {result.output.strip()}",
                container_id=container_id,
                command=command,
                exit_code=result.exit_code,
                output=result.output,
            )
        return result.output

    def run_json(self, *args: str) -> Any:
        """Run a CLI RPC call and parse its output as JSON.

        Raises:
            RpcResponseError: If the output is not valid JSON.
        """
        output = self.run(*args)
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise RpcResponseError(
                f"Failed to parse {args[0] if args else 'RPC'} response from "
                f"{self.node.name}: {e}",
                output=output,
            ) from e

    def require_field(self, data: Any, field_name: str, output: str = "") -> Any:
        """Return ``data[field_name]`` or raise RpcResponseError."""
        if not isinstance(data, dict) or data.get(field_name) is None:
            raise RpcResponseError(
                f"No {field_name} in response from {self.node.name}",
                output=output or json.dumps(data),
            )
        return data[field_name]
