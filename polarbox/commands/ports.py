"""
Host port allocation for network nodes.

Each node gets a block of PORT_BLOCK_SIZE consecutive host ports. Blocks are
handed out above the highest port already allocated in the network, so ports
of deleted nodes are never reused within the same network.
"""

import logging

from polarbox.commands.constants import (
    MAX_HOST_PORT,
    PORT_BLOCK_SIZE,
    PORT_RANGE_START,
)
from polarbox.commands.errors import DomainConfigError
from polarbox.commands.models import (
    BitcoinCorePorts,
    LndPorts,
    Network,
    Node,
    NodeKind,
    PortConfig,
)

logger = logging.getLogger(__name__)


def next_base_port(port_mappings: dict[str, PortConfig]) -> int:
    """Return the first port of the next free block.

    The block starts at the next multiple of PORT_BLOCK_SIZE above the highest
    allocated port, or at PORT_RANGE_START when nothing is allocated yet.
    """
    highest = max(
        (port for ports in port_mappings.values() for port in ports.all_ports()),
        default=PORT_RANGE_START - PORT_BLOCK_SIZE,
    )
    return (highest // PORT_BLOCK_SIZE + 1) * PORT_BLOCK_SIZE


def build_port_config(kind: NodeKind, base: int) -> PortConfig:
    """Lay out the kind-specific ports of a node starting at ``base``."""
    if kind is NodeKind.BITCOIN_CORE:
        return BitcoinCorePorts(
            rpc=base, p2p=base + 1, zmq_block=base + 2, zmq_tx=base + 3
        )
    if kind is NodeKind.LND:
        return LndPorts(rest=base, grpc=base + 1, p2p=base + 2)
    raise DomainConfigError(f"No port layout for node kind {kind.value}")


def allocate_ports(network: Network, node: Node) -> PortConfig:
    """Return the node's port config, allocating a new block if it has none.

    Raises:
        DomainConfigError: If the next block would run past the last valid
            TCP port.
    """
    existing = network.port_mappings.get(node.id)
    if existing is not None:
        return existing

    base = next_base_port(network.port_mappings)
    if base + PORT_BLOCK_SIZE - 1 > MAX_HOST_PORT:
        raise DomainConfigError(
            f"No host ports left for node '{node.name}' in network '{network.name}'",
            details={"base_port": base, "max_port": MAX_HOST_PORT},
        )

    ports = build_port_config(node.kind, base)
    network.port_mappings[node.id] = ports
    logger.debug(
        "Allocated ports %s for node %s in network %s",
        ports.all_ports(),
        node.name,
        network.name,
    )
    return ports


def docker_port_bindings(ports: PortConfig) -> dict[str, int]:
    """Convert a port config into the ``ports`` mapping docker-py expects."""
    return {
        f"{container_port}/tcp": host_port
        for container_port, host_port in ports.bindings().items()
    }
