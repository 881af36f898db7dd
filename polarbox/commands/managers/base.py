"""
BaseManager - Common Docker client utilities and shared functionality.
"""

import logging
from contextlib import contextmanager
from typing import Any, Optional

import docker
import requests
from docker.errors import APIError, DockerException, ImageNotFound, NotFound

from polarbox.commands.errors import ContainerNotFoundError, ContainerRuntimeError
from polarbox.commands.utils import console

logger = logging.getLogger(__name__)


@contextmanager
def docker_errors(action: str, container_id: Optional[str] = None):
    """Translate docker-py exceptions raised inside the block.

    NotFound becomes ContainerNotFoundError when a container is involved;
    everything else, including transport failures docker-py lets through as
    requests exceptions, becomes ContainerRuntimeError.
    """
    try:
        yield
    except NotFound as e:
        if container_id is not None:
            raise ContainerNotFoundError(
                f"Failed to {action}: container not found", container_id=container_id
            ) from e
        raise ContainerRuntimeError(f"Failed to {action}: {e}") from e
    except (DockerException, requests.exceptions.RequestException) as e:
        raise ContainerRuntimeError(
            f"Failed to {action}: {e}", container_id=container_id
        ) from e


class BaseManager:
    """Base class with shared Docker client utilities."""

    def __init__(
        self,
        client: Optional[docker.DockerClient] = None,
        docker_socket: Optional[str] = None,
    ):
        """Initialize with an optional Docker client.

        Args:
            client: Optional Docker client. If not provided, creates one from
                ``docker_socket`` or the environment.
            docker_socket: Optional daemon URL, e.g. unix:///var/run/docker.sock.

        Raises:
            ContainerRuntimeError: If the Docker daemon cannot be reached.
        """
        if client is not None:
            self.client = client
            return

        try:
            if docker_socket:
                self.client = docker.DockerClient(base_url=docker_socket)
            else:
                self.client = docker.from_env()
        except DockerException as e:
            raise ContainerRuntimeError(
                f"Failed to connect to Docker: {e}. "
                "Make sure Docker is running and you have permission to access it.",
                code="DOCKER_UNAVAILABLE",
            ) from e

    def ping(self) -> bool:
        """Check that the Docker daemon answers.

        Raises:
            ContainerRuntimeError: If the daemon is unreachable.
        """
        with docker_errors("ping Docker daemon"):
            return bool(self.client.ping())

    def image_exists(self, image: str) -> bool:
        try:
            self.client.images.get(image)
            return True
        except ImageNotFound:
            return False
        except (APIError, requests.exceptions.RequestException) as e:
            raise ContainerRuntimeError(f"Failed to look up image {image}: {e}") from e

    def pull_image(self, image: str) -> None:
        """Pull an image from its registry.

        Raises:
            ContainerRuntimeError: If the image cannot be pulled.
        """
        console.print(f"[yellow]Pulling image: {image}[/yellow]")
        try:
            self.client.images.pull(image)
        except NotFound as e:
            console.print(f"[red]✗ Image {image} not found in registry[/red]")
            raise ContainerRuntimeError(
                f"Image {image} not found in registry", code="IMAGE_NOT_FOUND"
            ) from e
        except (DockerException, requests.exceptions.RequestException) as e:
            console.print(f"[red]✗ Failed to pull image {image}: {str(e)}[/red]")
            raise ContainerRuntimeError(f"Failed to pull image {image}: {e}") from e
        console.print(f"[green]✓ Successfully pulled image: {image}[/green]")

    def ensure_image(self, image: str) -> None:
        """Ensure the specified Docker image is available locally, pulling if needed."""
        if self.image_exists(image):
            logger.debug("Image %s already available locally", image)
            return
        self.pull_image(image)

    @staticmethod
    def host_endpoint(attrs: dict[str, Any], container_port: int) -> Optional[str]:
        """Extract the published ``ip:port`` for a container port.

        Looks at the live NetworkSettings first and falls back to the
        requested HostConfig bindings.
        """
        key = f"{container_port}/tcp"
        sources = [
            (attrs.get("NetworkSettings") or {}).get("Ports") or {},
            (attrs.get("HostConfig") or {}).get("PortBindings") or {},
        ]
        for ports in sources:
            for binding in ports.get(key) or []:
                host_port = binding.get("HostPort")
                if not host_port or not str(host_port).isdigit():
                    continue
                host_ip = binding.get("HostIp") or "0.0.0.0"
                return f"{host_ip}:{host_port}"
        return None
