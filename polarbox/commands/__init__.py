"""
Commands module - All available CLI commands.
"""

from polarbox.commands.actor import ManagerActor
from polarbox.commands.errors import (
    ContainerNotFoundError,
    ContainerRuntimeError,
    DomainConfigError,
    ForbiddenDeletionError,
    InsufficientFundsError,
    NetworkExistsError,
    NetworkNotFoundError,
    NodeNotFoundError,
    NodeNotRunningError,
    NotFoundError,
    PersistenceError,
    PolarboxError,
    ReadinessTimeoutError,
    RpcCommandError,
    RpcResponseError,
)
from polarbox.commands.lightning import (
    close_channel,
    fund,
    mine,
    open_channel,
    pay,
    sync_chain,
    sync_graph,
)
from polarbox.commands.manager import PolarManager
from polarbox.commands.networks import (
    add_node,
    check,
    create,
    delete,
    info,
    list_networks,
    remove_node,
    start,
    stop,
)

__all__ = [
    # Commands
    "add_node",
    "check",
    "close_channel",
    "create",
    "delete",
    "fund",
    "info",
    "list_networks",
    "mine",
    "open_channel",
    "pay",
    "remove_node",
    "start",
    "stop",
    "sync_chain",
    "sync_graph",
    # Engine
    "PolarManager",
    "ManagerActor",
    # Errors
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
