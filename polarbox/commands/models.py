"""
Network and node records for polarbox.

These are the persisted shapes of a test network:
- Network: a named, independently lifecycled environment
- Node: one participant container (Bitcoin Core or a Lightning node)
- BitcoinCorePorts / LndPorts: host ports reserved for a node, tagged by kind
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from polarbox.commands.constants import (
    BITCOIN_P2P_PORT,
    BITCOIN_RPC_PORT,
    BITCOIN_ZMQ_BLOCK_PORT,
    BITCOIN_ZMQ_TX_PORT,
    DOCKER_NETWORK_PREFIX,
    LND_GRPC_PORT,
    LND_P2P_PORT,
    LND_REST_PORT,
)


def new_id() -> str:
    return str(uuid.uuid4())


class NetworkStatus(str, Enum):
    """Lifecycle status of a network."""

    STOPPED = "Stopped"
    STARTING = "Starting"
    RUNNING = "Running"
    STOPPING = "Stopping"
    ERROR = "Error"


class NodeKind(str, Enum):
    """Type of node."""

    BITCOIN_CORE = "BitcoinCore"
    LND = "Lnd"

    @property
    def is_lightning(self) -> bool:
        return self is NodeKind.LND

    @property
    def display_name(self) -> str:
        return {
            NodeKind.BITCOIN_CORE: "Bitcoin Core",
            NodeKind.LND: "LND",
        }[self]


class LightningImpl(str, Enum):
    """Lightning implementations that can be added to a network."""

    LND = "Lnd"

    @classmethod
    def all(cls) -> list["LightningImpl"]:
        return list(cls)

    @property
    def short_name(self) -> str:
        return {LightningImpl.LND: "lnd"}[self]

    @property
    def node_kind(self) -> NodeKind:
        return {LightningImpl.LND: NodeKind.LND}[self]

    def __str__(self) -> str:
        return {LightningImpl.LND: "LND"}[self]


@dataclass(frozen=True)
class BitcoinCorePorts:
    """Host ports for a Bitcoin Core node."""

    rpc: int
    p2p: int
    zmq_block: int
    zmq_tx: int

    type_tag = "BitcoinCore"

    def all_ports(self) -> list[int]:
        return [self.rpc, self.p2p, self.zmq_block, self.zmq_tx]

    def bindings(self) -> dict[int, int]:
        """Container port -> host port."""
        return {
            BITCOIN_RPC_PORT: self.rpc,
            BITCOIN_P2P_PORT: self.p2p,
            BITCOIN_ZMQ_BLOCK_PORT: self.zmq_block,
            BITCOIN_ZMQ_TX_PORT: self.zmq_tx,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_tag,
            "rpc": self.rpc,
            "p2p": self.p2p,
            "zmq_block": self.zmq_block,
            "zmq_tx": self.zmq_tx,
        }


@dataclass(frozen=True)
class LndPorts:
    """Host ports for an LND node."""

    rest: int
    grpc: int
    p2p: int

    type_tag = "Lnd"

    def all_ports(self) -> list[int]:
        return [self.rest, self.grpc, self.p2p]

    def bindings(self) -> dict[int, int]:
        """Container port -> host port."""
        return {
            LND_REST_PORT: self.rest,
            LND_GRPC_PORT: self.grpc,
            LND_P2P_PORT: self.p2p,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_tag,
            "rest": self.rest,
            "grpc": self.grpc,
            "p2p": self.p2p,
        }


PortConfig = Union[BitcoinCorePorts, LndPorts]


def port_config_from_dict(data: dict[str, Any]) -> PortConfig:
    """Rebuild a PortConfig from its tagged dictionary form.

    Raises:
        KeyError: If a required port field is missing.
        ValueError: If the type tag is unknown.
    """
    tag = data.get("type")
    if tag == BitcoinCorePorts.type_tag:
        return BitcoinCorePorts(
            rpc=int(data["rpc"]),
            p2p=int(data["p2p"]),
            zmq_block=int(data["zmq_block"]),
            zmq_tx=int(data["zmq_tx"]),
        )
    if tag == LndPorts.type_tag:
        return LndPorts(
            rest=int(data["rest"]), grpc=int(data["grpc"]), p2p=int(data["p2p"])
        )
    raise ValueError(f"Unknown port config type: {tag!r}")


@dataclass
class Node:
    """A node in a test network."""

    name: str
    kind: NodeKind
    id: str = field(default_factory=new_id)
    container_id: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.container_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "container_id": self.container_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Node":
        return cls(
            id=data["id"],
            name=data["name"],
            kind=NodeKind(data["kind"]),
            container_id=data.get("container_id"),
        )


@dataclass
class Network:
    """A Lightning Network development environment."""

    name: str
    id: str = field(default_factory=new_id)
    status: NetworkStatus = NetworkStatus.STOPPED
    nodes: list[Node] = field(default_factory=list)
    lnd_version: Optional[str] = None
    btc_version: Optional[str] = None
    alias_prefix: Optional[str] = None
    port_mappings: dict[str, PortConfig] = field(default_factory=dict)

    @property
    def docker_network_name(self) -> str:
        return f"{DOCKER_NETWORK_PREFIX}-{self.id}"

    def add_node(self, node: Node) -> None:
        self.nodes.append(node)

    def find_node(self, name: str) -> Optional[Node]:
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def bitcoin_node(self) -> Optional[Node]:
        for node in self.nodes:
            if node.kind is NodeKind.BITCOIN_CORE:
                return node
        return None

    def lightning_nodes(self) -> list[Node]:
        return [node for node in self.nodes if node.kind.is_lightning]

    def nodes_of_kind(self, kind: NodeKind) -> list[Node]:
        return [node for node in self.nodes if node.kind is kind]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "nodes": [node.to_dict() for node in self.nodes],
        }
        if self.lnd_version is not None:
            result["lnd_version"] = self.lnd_version
        if self.btc_version is not None:
            result["btc_version"] = self.btc_version
        if self.alias_prefix is not None:
            result["alias_prefix"] = self.alias_prefix
        if self.port_mappings:
            result["port_mappings"] = {
                node_id: ports.to_dict()
                for node_id, ports in self.port_mappings.items()
            }
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Network":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            status=NetworkStatus(data.get("status", NetworkStatus.STOPPED.value)),
            nodes=[Node.from_dict(node) for node in data.get("nodes", [])],
            lnd_version=data.get("lnd_version"),
            btc_version=data.get("btc_version"),
            alias_prefix=data.get("alias_prefix"),
            port_mappings={
                node_id: port_config_from_dict(ports)
                for node_id, ports in data.get("port_mappings", {}).items()
            },
        )
