"""
Bitcoin Core node driver.
"""

import logging
from typing import Any, Optional

from polarbox.commands.constants import (
    BITCOIN_CLI,
    BITCOIN_CONTAINER_PREFIX,
    BITCOIN_ZMQ_BLOCK_PORT,
    BITCOIN_ZMQ_TX_PORT,
    DEFAULT_BITCOIN_IMAGE,
    DEFAULT_WALLET_NAME,
    ERROR_NO_WALLET,
    RPC_PASSWORD,
    RPC_USER,
)
from polarbox.commands.errors import (
    DomainConfigError,
    PolarboxError,
    RpcCommandError,
    RpcResponseError,
)
from polarbox.commands.models import NodeKind
from polarbox.commands.nodes.base import NodeDriver

logger = logging.getLogger(__name__)


class BitcoinNode(NodeDriver):
    """bitcoind in regtest mode, driven through bitcoin-cli."""

    kind = NodeKind.BITCOIN_CORE
    container_prefix = BITCOIN_CONTAINER_PREFIX
    default_image = DEFAULT_BITCOIN_IMAGE

    @property
    def image(self) -> str:
        return self.network.btc_version or self.default_image

    def build_command(self) -> list[str]:
        return [
            "bitcoind",
            "-regtest",
            "-server",
            f"-rpcuser={RPC_USER}",
            f"-rpcpassword={RPC_PASSWORD}",
            "-rpcallowip=0.0.0.0/0",
            "-rpcbind=0.0.0.0",
            f"-zmqpubrawblock=tcp://0.0.0.0:{BITCOIN_ZMQ_BLOCK_PORT}",
            f"-zmqpubrawtx=tcp://0.0.0.0:{BITCOIN_ZMQ_TX_PORT}",
            # regtest has no fee estimates
            "-fallbackfee=0.00001",
        ]

    def cli(self) -> list[str]:
        return list(BITCOIN_CLI)

    def is_ready(self) -> bool:
        try:
            self.get_block_count()
        except PolarboxError:
            return False
        return True

    def create_wallet(self, name: str = DEFAULT_WALLET_NAME) -> bool:
        """Create a wallet, required by Bitcoin Core 28+ before mining.

        Returns:
            True if created, False if it already existed.
        """
        try:
            self.run("createwallet", name)
        except RpcCommandError as e:
            if "already exists" in e.output or "already loaded" in e.output:
                logger.debug("Wallet %s already present on %s", name, self.name)
                return False
            raise
        logger.debug("Created wallet %s on %s", name, self.name)
        return True

    def get_block_count(self) -> int:
        output = self.run("getblockcount")
        try:
            return int(output.strip())
        except ValueError as e:
            raise RpcResponseError(
                f"Failed to parse block count: {e}", output=output
            ) from e

    def get_blockchain_info(self) -> dict[str, Any]:
        return self.run_json("getblockchaininfo")

    def get_network_info(self) -> dict[str, Any]:
        return self.run_json("getnetworkinfo")

    def get_balance(self) -> float:
        """Wallet balance in BTC."""
        output = self.run("getbalance")
        try:
            return float(output.strip())
        except ValueError as e:
            raise RpcResponseError(f"Failed to parse balance: {e}", output=output) from e

    def get_new_address(self) -> str:
        output = self.run("getnewaddress").strip()
        if not output:
            raise RpcResponseError("Empty address returned by getnewaddress")
        return output

    def send_to_address(self, address: str, amount: float) -> str:
        """Send ``amount`` BTC to ``address``.

        Returns:
            The transaction id.
        """
        output = self.run("sendtoaddress", address, f"{amount:.8f}").strip()
        if not output:
            raise RpcResponseError("Empty txid returned by sendtoaddress")
        return output

    def mine_blocks(self, blocks: int, address: Optional[str] = None) -> list[str]:
        """Mine ``blocks`` blocks, paying the rewards to ``address``.

        A fresh wallet address is used when none is given.

        Returns:
            The new block hashes.
        """
        if address is None:
            try:
                address = self.get_new_address()
            except RpcCommandError as e:
                if "No wallet is loaded" in e.output:
                    raise DomainConfigError(
                        ERROR_NO_WALLET, code="NO_WALLET", details={"node": self.name}
                    ) from e
                raise

        logger.debug("Mining %d blocks to %s on %s", blocks, address, self.name)
        hashes = self.run_json("generatetoaddress", str(blocks), address)
        if not isinstance(hashes, list):
            raise RpcResponseError(
                "Failed to parse block hashes", output=str(hashes)
            )
        return [str(block_hash) for block_hash in hashes]
