"""
DockerNetworkManager - Docker network management for test networks.
"""

import logging
from typing import Optional

import docker
import requests
from docker.errors import DockerException, NotFound

from polarbox.commands.errors import ContainerRuntimeError
from polarbox.commands.managers.base import BaseManager
from polarbox.commands.utils import console

logger = logging.getLogger(__name__)


class DockerNetworkManager(BaseManager):
    """Creates and removes the bridge network each test network runs on."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        """Initialize the DockerNetworkManager.

        Args:
            client: Optional Docker client. If not provided, creates one from environment.
        """
        super().__init__(client)

    def get_network(self, network_name: str):
        """Get a Docker network by name, or None if it does not exist."""
        try:
            return self.client.networks.get(network_name)
        except NotFound:
            return None
        except (DockerException, requests.exceptions.RequestException) as e:
            raise ContainerRuntimeError(
                f"Failed to look up network {network_name}: {e}"
            ) from e

    def create_network(self, network_name: str, labels: Optional[dict] = None) -> str:
        """Ensure a bridge network exists.

        An existing network with the same name is reused.

        Returns:
            The Docker network id.

        Raises:
            ContainerRuntimeError: If the network cannot be created.
        """
        existing = self.get_network(network_name)
        if existing is not None:
            console.print(f"[cyan]✓ Network {network_name} already exists[/cyan]")
            return existing.id

        console.print(f"[yellow]Creating network: {network_name}[/yellow]")
        try:
            network = self.client.networks.create(
                network_name, driver="bridge", labels=labels or {}
            )
        except (DockerException, requests.exceptions.RequestException) as e:
            raise ContainerRuntimeError(
                f"Failed to create network {network_name}: {e}"
            ) from e
        console.print(f"[green]✓ Created network: {network_name}[/green]")
        return network.id

    def remove_network(self, network_name: str) -> None:
        """Remove a Docker network. A network that is already gone is ignored.

        Raises:
            ContainerRuntimeError: If Docker refuses to remove it.
        """
        network = self.get_network(network_name)
        if network is None:
            logger.debug("Network %s already removed", network_name)
            return
        try:
            network.remove()
        except NotFound:
            return
        except (DockerException, requests.exceptions.RequestException) as e:
            raise ContainerRuntimeError(
                f"Failed to remove network {network_name}: {e}"
            ) from e
        logger.debug("Removed network %s", network_name)
