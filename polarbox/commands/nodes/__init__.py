"""
Node drivers, one per node kind.

- NodeDriver: container lifecycle and CLI RPC plumbing shared by all kinds
- BitcoinNode: bitcoind / bitcoin-cli
- LndNode: lnd / lncli
"""

from polarbox.commands.errors import DomainConfigError
from polarbox.commands.models import Network, Node, NodeKind
from polarbox.commands.nodes.base import NodeDriver
from polarbox.commands.nodes.bitcoin import BitcoinNode
from polarbox.commands.nodes.lnd import LndNode, parse_channel_point

DRIVERS: dict[NodeKind, type[NodeDriver]] = {
    NodeKind.BITCOIN_CORE: BitcoinNode,
    NodeKind.LND: LndNode,
}


def create_driver(network: Network, node: Node, runtime) -> NodeDriver:
    """Build the driver for a node's kind.

    Raises:
        DomainConfigError: If no driver is registered for the kind.
    """
    driver_cls = DRIVERS.get(node.kind)
    if driver_cls is None:
        raise DomainConfigError(f"No driver registered for node kind {node.kind.value}")
    return driver_cls(network, node, runtime)


__all__ = [
    "DRIVERS",
    "NodeDriver",
    "BitcoinNode",
    "LndNode",
    "create_driver",
    "parse_channel_point",
]
