"""
ContainerManager - Node container management.

This is the only place polarbox talks to the Docker daemon about containers.
Node drivers and the orchestration engine go through it, so every docker-py
exception is translated into the polarbox error hierarchy here.
"""

import logging
from typing import Any, NamedTuple, Optional

import docker
import requests
from docker.errors import DockerException, NotFound

from polarbox.commands.constants import CONTAINER_STOP_TIMEOUT
from polarbox.commands.managers.base import BaseManager, docker_errors
from polarbox.commands.managers.network import DockerNetworkManager
from polarbox.commands.utils import console

logger = logging.getLogger(__name__)


class ExecOutput(NamedTuple):
    """Result of a command run inside a container."""

    exit_code: int
    output: str


class ContainerManager(BaseManager):
    """Manages node containers and the Docker networks they join."""

    def __init__(
        self,
        client: Optional[docker.DockerClient] = None,
        docker_socket: Optional[str] = None,
    ):
        """Initialize the ContainerManager.

        Args:
            client: Optional Docker client. If not provided, creates one from
                ``docker_socket`` or the environment.
            docker_socket: Optional daemon URL.
        """
        super().__init__(client, docker_socket=docker_socket)
        self.network_manager = DockerNetworkManager(self.client)

    # Docker networks

    def create_network(self, network_name: str, labels: Optional[dict] = None) -> str:
        return self.network_manager.create_network(network_name, labels=labels)

    def remove_network(self, network_name: str) -> None:
        self.network_manager.remove_network(network_name)

    # Containers

    def remove_stale_container(self, container_name: str) -> None:
        """Remove a leftover container that holds the given name.

        Containers are named after node ids, so a leftover can only come from
        a previous run that crashed before cleaning up.
        """
        try:
            existing = self.client.containers.get(container_name)
        except NotFound:
            return
        except (DockerException, requests.exceptions.RequestException) as e:
            logger.debug("Could not look up container %s: %s", container_name, e)
            return

        console.print(
            f"[yellow]Container {container_name} already exists, removing it...[/yellow]"
        )
        try:
            existing.remove(force=True)
            console.print(
                f"[green]✓ Cleaned up existing container {container_name}[/green]"
            )
        except NotFound:
            pass
        except (DockerException, requests.exceptions.RequestException) as e:
            console.print(
                f"[yellow]⚠️  Could not remove container {container_name}: {str(e)}[/yellow]"
            )

    def create_container(
        self,
        name: str,
        image: str,
        command: Optional[list[str]] = None,
        ports: Optional[dict[str, int]] = None,
        network: Optional[str] = None,
        labels: Optional[dict[str, str]] = None,
    ) -> str:
        """Create (but do not start) a container.

        Args:
            name: Container name.
            image: Image reference; pulled if not present locally.
            command: Command line to run.
            ports: docker-py port mapping, e.g. ``{"18443/tcp": 20000}``.
            network: Docker network to attach the container to.
            labels: Container labels.

        Returns:
            The container id.

        Raises:
            ContainerRuntimeError: If the image or container cannot be created.
        """
        self.ensure_image(image)
        self.remove_stale_container(name)

        with docker_errors(f"create container {name}"):
            container = self.client.containers.create(
                image,
                command=command,
                name=name,
                detach=True,
                ports=ports or {},
                network=network,
                labels=labels or {},
            )
        logger.debug("Created container %s (%s) from %s", name, container.id, image)
        return container.id

    def start_container(self, container_id: str) -> None:
        with docker_errors("start container", container_id):
            self.client.containers.get(container_id).start()
        logger.debug("Started container %s", container_id)

    def stop_container(
        self, container_id: str, timeout: int = CONTAINER_STOP_TIMEOUT
    ) -> None:
        """Stop a running container, giving it ``timeout`` seconds to exit.

        Raises:
            ContainerNotFoundError: If the container does not exist.
            ContainerRuntimeError: If Docker fails to stop it.
        """
        with docker_errors("stop container", container_id):
            self.client.containers.get(container_id).stop(timeout=timeout)
        logger.debug("Stopped container %s", container_id)

    def remove_container(self, container_id: str, force: bool = True) -> None:
        """Remove a container.

        Raises:
            ContainerNotFoundError: If the container does not exist.
            ContainerRuntimeError: If Docker fails to remove it.
        """
        with docker_errors("remove container", container_id):
            self.client.containers.get(container_id).remove(force=force)
        logger.debug("Removed container %s", container_id)

    def exec_command(self, container_id: str, command: list[str]) -> ExecOutput:
        """Run a command inside a container and collect stdout and stderr.

        A non-zero exit code is returned, not raised; callers decide what
        counts as failure.
        """
        with docker_errors(f"exec {command[0] if command else ''}", container_id):
            container = self.client.containers.get(container_id)
            result = container.exec_run(command, stdout=True, stderr=True)

        raw = result.output or b""
        output = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        exit_code = result.exit_code if result.exit_code is not None else 0
        logger.debug(
            "exec %s in %s -> exit %s: %s",
            " ".join(command),
            container_id[:12],
            exit_code,
            output.strip(),
        )
        return ExecOutput(exit_code=exit_code, output=output)

    def inspect_container(self, container_id: str) -> dict[str, Any]:
        """Return the container's inspect data (docker ``attrs``)."""
        with docker_errors("inspect container", container_id):
            container = self.client.containers.get(container_id)
            container.reload()
        return container.attrs

