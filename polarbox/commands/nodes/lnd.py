"""
LND node driver.
"""

import logging
from typing import Any, Optional

from polarbox.commands.constants import (
    BITCOIN_ZMQ_BLOCK_PORT,
    BITCOIN_ZMQ_TX_PORT,
    DEFAULT_ALIAS_PREFIX,
    DEFAULT_LND_IMAGE,
    ERROR_NO_BITCOIN_NODE,
    LNCLI,
    LND_CONTAINER_PREFIX,
    LND_P2P_PORT,
    RPC_PASSWORD,
    RPC_USER,
)
from polarbox.commands.errors import DomainConfigError, PolarboxError
from polarbox.commands.models import NodeKind
from polarbox.commands.nodes.base import NodeDriver
from polarbox.commands.nodes.bitcoin import BitcoinNode

logger = logging.getLogger(__name__)


def parse_channel_point(channel_point: str) -> tuple[str, int]:
    """Split a ``txid:output_index`` channel point.

    Raises:
        DomainConfigError: If the channel point is malformed.
    """
    txid, sep, index = channel_point.strip().rpartition(":")
    if not sep or not txid or not index.isdigit():
        raise DomainConfigError(
            f"Invalid channel point '{channel_point}', expected <txid>:<output_index>",
            code="INVALID_CHANNEL_POINT",
            details={"channel_point": channel_point},
        )
    return txid, int(index)


def _as_int(value: Any) -> int:
    """lncli reports satoshi amounts as strings."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class LndNode(NodeDriver):
    """An lnd daemon backed by the network's bitcoind, driven through lncli."""

    kind = NodeKind.LND
    container_prefix = LND_CONTAINER_PREFIX
    default_image = DEFAULT_LND_IMAGE

    @property
    def image(self) -> str:
        return self.network.lnd_version or self.default_image

    @property
    def alias(self) -> str:
        """``{alias_prefix}-{n}`` where n is the node's position among LND nodes."""
        prefix = self.network.alias_prefix or DEFAULT_ALIAS_PREFIX
        lnd_nodes = self.network.nodes_of_kind(NodeKind.LND)
        position = next(
            (i for i, node in enumerate(lnd_nodes, start=1) if node.id == self.node.id),
            len(lnd_nodes) + 1,
        )
        return f"{prefix}-{position}"

    @property
    def peer_address(self) -> str:
        """Address other nodes use to reach this one inside the Docker network."""
        return f"{self.container_name}:{LND_P2P_PORT}"

    def backend_host(self) -> str:
        bitcoin = self.network.bitcoin_node()
        if bitcoin is None:
            raise DomainConfigError(ERROR_NO_BITCOIN_NODE, code="NO_BITCOIN_NODE")
        return BitcoinNode.container_name_for(bitcoin)

    def build_command(self) -> list[str]:
        backend = self.backend_host()
        return [
            "lnd",
            "--noseedbackup",
            "--trickledelay=5000",
            f"--alias={self.alias}",
            "--debuglevel=info",
            "--bitcoin.active",
            "--bitcoin.regtest",
            "--bitcoin.node=bitcoind",
            f"--bitcoind.rpchost={backend}",
            f"--bitcoind.rpcuser={RPC_USER}",
            f"--bitcoind.rpcpass={RPC_PASSWORD}",
            f"--bitcoind.zmqpubrawblock=tcp://{backend}:{BITCOIN_ZMQ_BLOCK_PORT}",
            f"--bitcoind.zmqpubrawtx=tcp://{backend}:{BITCOIN_ZMQ_TX_PORT}",
        ]

    def cli(self) -> list[str]:
        return list(LNCLI)

    def is_ready(self) -> bool:
        try:
            self.get_info()
        except PolarboxError:
            return False
        return True

    def get_info(self) -> dict[str, Any]:
        return self.run_json("getinfo")

    def get_pubkey(self) -> str:
        return str(self.require_field(self.get_info(), "identity_pubkey"))

    def get_new_address(self) -> str:
        """New p2wkh on-chain address for deposits."""
        return str(self.require_field(self.run_json("newaddress", "p2wkh"), "address"))

    def connect_peer(self, peer_pubkey: str, peer_host: str) -> None:
        self.run("connect", f"{peer_pubkey}@{peer_host}")

    def open_channel(
        self, peer_pubkey: str, amount: int, push_amount: Optional[int] = None
    ) -> str:
        """Open a channel of ``amount`` sats, optionally pushing some to the peer.

        Returns:
            The funding transaction id.
        """
        args = ["openchannel", peer_pubkey, str(amount)]
        if push_amount:
            args.append(str(push_amount))
        return str(self.require_field(self.run_json(*args), "funding_txid"))

    def close_channel(self, channel_point: str, force: bool = False) -> str:
        """Close a channel cooperatively, or unilaterally when ``force`` is set.

        Returns:
            The closing transaction id.
        """
        txid, index = parse_channel_point(channel_point)
        args = ["closechannel", "--funding_txid", txid, "--output_index", str(index)]
        if force:
            args.append("--force")
        return str(self.require_field(self.run_json(*args), "closing_txid"))

    def create_invoice(self, amount: int, memo: Optional[str] = None) -> str:
        """Create an invoice and return its payment request."""
        args = ["addinvoice", "--json", "--amt", str(amount)]
        if memo:
            args.extend(["--memo", memo])
        return str(self.require_field(self.run_json(*args), "payment_request"))

    def pay_invoice(self, payment_request: str) -> str:
        """Pay a bolt11 invoice and return the payment hash.

        Raises:
            DomainConfigError: If lnd reports the payment as failed.
        """
        response = self.run_json("payinvoice", "--json", "--force", payment_request)
        if isinstance(response, dict) and response.get("status") == "FAILED":
            reason = response.get("failure_reason") or "unknown reason"
            raise DomainConfigError(
                f"Payment failed: {reason}",
                code="PAYMENT_FAILED",
                details={"failure_reason": reason},
            )
        return str(self.require_field(response, "payment_hash"))

    def list_channels(self) -> list[dict[str, Any]]:
        channels = self.require_field(self.run_json("listchannels"), "channels")
        return list(channels)

    def wallet_balance(self) -> int:
        """Confirmed on-chain balance in sats."""
        return _as_int(
            self.require_field(self.run_json("walletbalance"), "confirmed_balance")
        )

    def channel_balance(self) -> int:
        """Local channel balance in sats."""
        return _as_int(self.require_field(self.run_json("channelbalance"), "balance"))
