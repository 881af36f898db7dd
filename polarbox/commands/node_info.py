"""
Point-in-time node summaries.

These are assembled on demand from RPC calls and container inspection and
are never persisted.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Union

from polarbox.commands.constants import (
    BITCOIN_P2P_PORT,
    BITCOIN_RPC_PORT,
    LND_GRPC_PORT,
    LND_REST_PORT,
)
from polarbox.commands.managers.base import BaseManager
from polarbox.commands.nodes import BitcoinNode, LndNode


@dataclass
class ChannelInfo:
    """One channel as reported by ``lncli listchannels``."""

    channel_point: str
    remote_pubkey: str
    capacity: int
    local_balance: int
    remote_balance: int
    active: bool

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> "ChannelInfo":
        return cls(
            channel_point=data.get("channel_point") or "unknown",
            remote_pubkey=data.get("remote_pubkey") or "unknown",
            capacity=_to_int(data.get("capacity")),
            local_balance=_to_int(data.get("local_balance")),
            remote_balance=_to_int(data.get("remote_balance")),
            active=bool(data.get("active", False)),
        )


@dataclass
class BitcoinNodeInfo:
    version: str
    blocks: int
    chain: str
    connections: int
    difficulty: float
    ibd_complete: bool
    balance: float
    rpc_host: str
    p2p_host: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class LndNodeInfo:
    alias: str
    version: str
    identity_pubkey: str
    num_active_channels: int
    num_pending_channels: int
    num_peers: int
    synced_to_chain: bool
    synced_to_graph: bool
    block_height: int
    block_hash: str
    wallet_balance: int
    channel_balance: int
    rest_host: str
    grpc_host: str
    channels: list[ChannelInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


NodeInfo = Union[BitcoinNodeInfo, LndNodeInfo]


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _endpoint(attrs: dict[str, Any], container_port: int) -> str:
    return BaseManager.host_endpoint(attrs, container_port) or str(container_port)


def gather_bitcoin_info(driver: BitcoinNode) -> BitcoinNodeInfo:
    """Assemble a Bitcoin Core summary from RPC calls and container inspection."""
    blockchain = driver.get_blockchain_info()
    network_info = driver.get_network_info()
    balance = driver.get_balance()
    attrs = driver.runtime.inspect_container(driver.container_id)

    return BitcoinNodeInfo(
        version=network_info.get("subversion") or "unknown",
        blocks=_to_int(blockchain.get("blocks")),
        chain=blockchain.get("chain") or "unknown",
        connections=_to_int(network_info.get("connections")),
        difficulty=float(blockchain.get("difficulty") or 0.0),
        ibd_complete=not blockchain.get("initialblockdownload", True),
        balance=balance,
        rpc_host=_endpoint(attrs, BITCOIN_RPC_PORT),
        p2p_host=_endpoint(attrs, BITCOIN_P2P_PORT),
    )


def gather_lnd_info(driver: LndNode) -> LndNodeInfo:
    """Assemble an LND summary, including its channel list."""
    info = driver.get_info()
    wallet_balance = driver.wallet_balance()
    channel_balance = driver.channel_balance()
    channels = [ChannelInfo.from_rpc(ch) for ch in driver.list_channels()]
    attrs = driver.runtime.inspect_container(driver.container_id)

    return LndNodeInfo(
        alias=info.get("alias") or "unknown",
        version=info.get("version") or "unknown",
        identity_pubkey=info.get("identity_pubkey") or "unknown",
        num_active_channels=_to_int(info.get("num_active_channels")),
        num_pending_channels=_to_int(info.get("num_pending_channels")),
        num_peers=_to_int(info.get("num_peers")),
        synced_to_chain=bool(info.get("synced_to_chain", False)),
        synced_to_graph=bool(info.get("synced_to_graph", False)),
        block_height=_to_int(info.get("block_height")),
        block_hash=info.get("block_hash") or "unknown",
        wallet_balance=wallet_balance,
        channel_balance=channel_balance,
        rest_host=_endpoint(attrs, LND_REST_PORT),
        grpc_host=_endpoint(attrs, LND_GRPC_PORT),
        channels=channels,
    )
