"""
Managers module - Docker-facing manager classes.

- BaseManager: Common Docker client utilities
- DockerNetworkManager: Docker network management
- ContainerManager: Node container management and command execution
"""

from polarbox.commands.managers.base import BaseManager
from polarbox.commands.managers.container import ContainerManager, ExecOutput
from polarbox.commands.managers.network import DockerNetworkManager

__all__ = [
    "BaseManager",
    "DockerNetworkManager",
    "ContainerManager",
    "ExecOutput",
]
