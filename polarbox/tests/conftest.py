"""Pytest configuration for polarbox tests.

Provides a stateful stand-in for ContainerManager that keeps containers and
Docker networks in memory and answers the bitcoin-cli / lncli calls the
drivers make, so lifecycle and workflow tests run without a Docker daemon.
"""

import hashlib
import itertools
import json
from dataclasses import dataclass, field
from typing import Optional

import pytest

from polarbox.commands.constants import (
    BITCOIN_CLI,
    LNCLI,
    LND_CONTAINER_PREFIX,
    SATS_PER_BTC,
)
from polarbox.commands.errors import ContainerNotFoundError, ContainerRuntimeError
from polarbox.commands.managers.container import ExecOutput
from polarbox.commands.manager import PolarManager
from polarbox.commands.store import NetworkStore

BLOCK_REWARD = 50.0
COINBASE_MATURITY = 100


def _hash(*parts) -> str:
    return hashlib.sha256(":".join(str(p) for p in parts).encode()).hexdigest()


@dataclass
class FakeContainer:
    id: str
    name: str
    image: str
    command: list
    ports: dict
    network: Optional[str]
    labels: dict
    running: bool = False


@dataclass
class FakeChannel:
    funding_txid: str
    output_index: int
    opener: str
    peer: str
    capacity: int
    balances: dict
    active: bool = False

    @property
    def channel_point(self) -> str:
        return f"{self.funding_txid}:{self.output_index}"


@dataclass
class FakeLnd:
    container_id: str
    alias: str
    pubkey: str
    wallet_sats: int = 0
    peers: set = field(default_factory=set)
    addresses: set = field(default_factory=set)


class FakeChain:
    """Just enough of a regtest chain for the workflows under test."""

    def __init__(self):
        self.height = 0
        self.wallets: set = set()
        self.spent = 0.0
        self.pending: list = []  # (address, amount) awaiting confirmation
        self.sends: list = []
        self.blocks: list = []

    @property
    def balance(self) -> float:
        mature = max(0, self.height - COINBASE_MATURITY)
        return mature * BLOCK_REWARD - self.spent


class FakeContainerRuntime:
    """In-memory ContainerManager replacement."""

    def __init__(self):
        self.containers: dict[str, FakeContainer] = {}
        self.networks: set = set()
        self.calls: list = []
        self.chain = FakeChain()
        self.lnd: dict[str, FakeLnd] = {}
        self.channels: list[FakeChannel] = []
        self.invoices: dict[str, tuple] = {}
        self.fail_on_start: set = set()  # container name prefixes that fail to start
        self.bitcoin_warmup = 0  # getblockcount calls to fail before answering
        self.lnd_connect_fails = False
        self._ids = itertools.count(1)

    # ContainerManager surface

    def ping(self) -> bool:
        self.calls.append(("ping",))
        return True

    def create_network(self, network_name: str, labels=None) -> str:
        self.calls.append(("create_network", network_name))
        self.networks.add(network_name)
        return f"net-{network_name}"

    def remove_network(self, network_name: str) -> None:
        self.calls.append(("remove_network", network_name))
        self.networks.discard(network_name)

    def create_container(
        self, name, image, command=None, ports=None, network=None, labels=None
    ) -> str:
        self.calls.append(("create_container", name))
        if network is not None and network not in self.networks:
            raise ContainerRuntimeError(f"network {network} not found")
        for existing in list(self.containers.values()):
            if existing.name == name:
                del self.containers[existing.id]
        container_id = f"cid{next(self._ids):04d}{_hash(name)[:8]}"
        self.containers[container_id] = FakeContainer(
            id=container_id,
            name=name,
            image=image,
            command=list(command or []),
            ports=dict(ports or {}),
            network=network,
            labels=dict(labels or {}),
        )
        return container_id

    def start_container(self, container_id: str) -> None:
        self.calls.append(("start_container", container_id))
        container = self._get(container_id)
        if any(container.name.startswith(p) for p in self.fail_on_start):
            raise ContainerRuntimeError(
                f"Failed to start container: {container.name}",
                container_id=container_id,
            )
        container.running = True
        if container.command and container.command[0] == "lnd":
            alias = next(
                (a.split("=", 1)[1] for a in container.command if a.startswith("--alias=")),
                "",
            )
            self.lnd[container_id] = FakeLnd(
                container_id=container_id,
                alias=alias,
                pubkey="02" + _hash("pubkey", container.name)[:64],
            )

    def stop_container(self, container_id: str, timeout: int = 10) -> None:
        self.calls.append(("stop_container", container_id))
        self._get(container_id).running = False

    def remove_container(self, container_id: str, force: bool = True) -> None:
        self.calls.append(("remove_container", container_id))
        self._get(container_id)
        del self.containers[container_id]
        self.lnd.pop(container_id, None)

    def inspect_container(self, container_id: str) -> dict:
        container = self._get(container_id)
        return {
            "Name": f"/{container.name}",
            "NetworkSettings": {
                "Ports": {
                    key: [{"HostIp": "0.0.0.0", "HostPort": str(host_port)}]
                    for key, host_port in container.ports.items()
                }
            },
        }

    def exec_command(self, container_id: str, command: list) -> ExecOutput:
        self.calls.append(("exec", container_id, tuple(command)))
        container = self._get(container_id)
        if not container.running:
            raise ContainerRuntimeError("container is not running", container_id)
        if command[: len(BITCOIN_CLI)] == BITCOIN_CLI:
            return self._bitcoin_cli(command[len(BITCOIN_CLI) :])
        if command[: len(LNCLI)] == LNCLI:
            return self._lncli(self.lnd[container_id], command[len(LNCLI) :])
        return ExecOutput(127, f"exec: {command[0]}: not found")

    # Helpers for tests

    def running_containers(self) -> list[FakeContainer]:
        return [c for c in self.containers.values() if c.running]

    def container_by_name(self, name: str) -> Optional[FakeContainer]:
        return next((c for c in self.containers.values() if c.name == name), None)

    def count_calls(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    def _get(self, container_id: str) -> FakeContainer:
        container = self.containers.get(container_id)
        if container is None:
            raise ContainerNotFoundError(
                "container not found", container_id=container_id
            )
        return container

    # bitcoin-cli

    def _bitcoin_cli(self, args: list) -> ExecOutput:
        chain = self.chain
        method, params = args[0], args[1:]

        if method == "getblockcount":
            if self.bitcoin_warmup > 0:
                self.bitcoin_warmup -= 1
                return ExecOutput(28, "error code: -28\nerror message:\nLoading block index...")
            return ExecOutput(0, f"{chain.height}\n")
        if method == "createwallet":
            if params[0] in chain.wallets:
                return ExecOutput(
                    4,
                    "error code: -4\nerror message:\n"
                    "Wallet file verification failed. Database already exists.",
                )
            chain.wallets.add(params[0])
            return ExecOutput(0, json.dumps({"name": params[0]}))
        if method in ("getnewaddress", "getbalance", "sendtoaddress") and not chain.wallets:
            return ExecOutput(
                18,
                "error code: -18\nerror message:\n"
                "No wallet is loaded. Load a wallet using loadwallet or create a new one with createwallet.",
            )
        if method == "getnewaddress":
            return ExecOutput(0, f"bcrt1q{_hash('addr', len(chain.blocks), len(chain.sends))[:38]}\n")
        if method == "getbalance":
            return ExecOutput(0, f"{chain.balance:.8f}\n")
        if method == "sendtoaddress":
            address, amount = params[0], float(params[1])
            if amount > chain.balance:
                return ExecOutput(6, "error code: -6\nerror message:\nInsufficient funds")
            txid = _hash("tx", address, amount, len(chain.sends))
            chain.spent += amount
            chain.sends.append((address, amount, txid))
            chain.pending.append((address, amount))
            return ExecOutput(0, txid + "\n")
        if method == "generatetoaddress":
            count = int(params[0])
            hashes = []
            for _ in range(count):
                chain.height += 1
                block_hash = _hash("block", chain.height)
                chain.blocks.append(block_hash)
                hashes.append(block_hash)
            self._confirm()
            return ExecOutput(0, json.dumps(hashes, indent=2))
        if method == "getblockchaininfo":
            return ExecOutput(
                0,
                json.dumps(
                    {
                        "chain": "regtest",
                        "blocks": chain.height,
                        "difficulty": 4.656542373906925e-10,
                        "initialblockdownload": chain.height == 0,
                    }
                ),
            )
        if method == "getnetworkinfo":
            return ExecOutput(
                0, json.dumps({"subversion": "/Satoshi:28.0.0/", "connections": 0})
            )
        return ExecOutput(1, f"error code: -32601\nerror message:\nMethod not found: {method}")

    def _confirm(self) -> None:
        for address, amount in self.chain.pending:
            for node in self.lnd.values():
                if address in node.addresses:
                    node.wallet_sats += int(round(amount * SATS_PER_BTC))
        self.chain.pending = []
        for channel in self.channels:
            channel.active = True

    # lncli

    def _lncli(self, node: FakeLnd, args: list) -> ExecOutput:
        method, params = args[0], args[1:]

        if method == "getinfo":
            active = [c for c in self._channels_of(node) if c.active]
            pending = [c for c in self._channels_of(node) if not c.active]
            return ExecOutput(
                0,
                json.dumps(
                    {
                        "version": "0.18.5-beta commit=v0.18.5-beta",
                        "identity_pubkey": node.pubkey,
                        "alias": node.alias,
                        "num_pending_channels": len(pending),
                        "num_active_channels": len(active),
                        "num_peers": len(node.peers),
                        "block_height": self.chain.height,
                        "block_hash": self.chain.blocks[-1] if self.chain.blocks else "0" * 64,
                        "synced_to_chain": True,
                        "synced_to_graph": True,
                    }
                ),
            )
        if method == "newaddress":
            address = f"bcrt1q{_hash('lnd', node.pubkey, len(node.addresses))[:38]}"
            node.addresses.add(address)
            return ExecOutput(0, json.dumps({"address": address}))
        if method == "connect":
            pubkey, host = params[0].split("@", 1)
            peer = self._lnd_by_host(host)
            if peer is None or peer.pubkey != pubkey:
                return ExecOutput(1, "[lncli] rpc error: dial tcp: lookup failed")
            if self.lnd_connect_fails:
                return ExecOutput(1, "[lncli] rpc error: connection refused")
            if pubkey in node.peers:
                return ExecOutput(
                    1, f"[lncli] rpc error: already connected to peer: {pubkey}"
                )
            node.peers.add(peer.pubkey)
            peer.peers.add(node.pubkey)
            return ExecOutput(0, "{\n\n}")
        if method == "openchannel":
            pubkey, amount = params[0], int(params[1])
            push = int(params[2]) if len(params) > 2 else 0
            if pubkey not in node.peers:
                return ExecOutput(1, "[lncli] rpc error: peer is not connected")
            if amount > node.wallet_sats:
                return ExecOutput(
                    1, "[lncli] rpc error: not enough witness outputs to create funding transaction"
                )
            node.wallet_sats -= amount
            channel = FakeChannel(
                funding_txid=_hash("funding", node.pubkey, pubkey, len(self.channels)),
                output_index=0,
                opener=node.pubkey,
                peer=pubkey,
                capacity=amount,
                balances={node.pubkey: amount - push, pubkey: push},
            )
            self.channels.append(channel)
            return ExecOutput(0, json.dumps({"funding_txid": channel.funding_txid}))
        if method == "closechannel":
            txid = params[params.index("--funding_txid") + 1]
            index = int(params[params.index("--output_index") + 1])
            channel = next(
                (
                    c
                    for c in self._channels_of(node)
                    if c.funding_txid == txid and c.output_index == index
                ),
                None,
            )
            if channel is None:
                return ExecOutput(1, "[lncli] rpc error: unable to find channel")
            self.channels.remove(channel)
            return ExecOutput(
                0, json.dumps({"closing_txid": _hash("closing", channel.channel_point)})
            )
        if method == "addinvoice":
            amount = int(params[params.index("--amt") + 1])
            memo = params[params.index("--memo") + 1] if "--memo" in params else ""
            r_hash = _hash("invoice", node.pubkey, len(self.invoices))
            payment_request = f"lnbcrt{amount}n1{r_hash[:40]}"
            self.invoices[payment_request] = (node.pubkey, amount, r_hash, memo)
            return ExecOutput(
                0,
                json.dumps(
                    {
                        "r_hash": r_hash,
                        "payment_request": payment_request,
                        "add_index": str(len(self.invoices)),
                    }
                ),
            )
        if method == "payinvoice":
            payment_request = params[-1]
            payee, amount, r_hash, _ = self.invoices[payment_request]
            channel = next(
                (
                    c
                    for c in self._channels_of(node)
                    if c.active
                    and payee in (c.opener, c.peer)
                    and c.balances[node.pubkey] >= amount
                ),
                None,
            )
            if channel is None:
                return ExecOutput(
                    0,
                    json.dumps(
                        {
                            "payment_hash": r_hash,
                            "status": "FAILED",
                            "failure_reason": "FAILURE_REASON_NO_ROUTE",
                        }
                    ),
                )
            channel.balances[node.pubkey] -= amount
            channel.balances[payee] += amount
            return ExecOutput(
                0, json.dumps({"payment_hash": r_hash, "status": "SUCCEEDED"})
            )
        if method == "listchannels":
            channels = [
                {
                    "active": c.active,
                    "remote_pubkey": c.peer if c.opener == node.pubkey else c.opener,
                    "channel_point": c.channel_point,
                    "capacity": str(c.capacity),
                    "local_balance": str(c.balances[node.pubkey]),
                    "remote_balance": str(
                        c.balances[c.peer if c.opener == node.pubkey else c.opener]
                    ),
                }
                for c in self._channels_of(node)
                if c.active
            ]
            return ExecOutput(0, json.dumps({"channels": channels}))
        if method == "walletbalance":
            return ExecOutput(
                0,
                json.dumps(
                    {
                        "total_balance": str(node.wallet_sats),
                        "confirmed_balance": str(node.wallet_sats),
                        "unconfirmed_balance": "0",
                    }
                ),
            )
        if method == "channelbalance":
            local = sum(
                c.balances[node.pubkey] for c in self._channels_of(node) if c.active
            )
            return ExecOutput(0, json.dumps({"balance": str(local)}))
        return ExecOutput(1, f"No help topic for '{method}'")

    def _channels_of(self, node: FakeLnd) -> list[FakeChannel]:
        return [c for c in self.channels if node.pubkey in (c.opener, c.peer)]

    def _lnd_by_host(self, host: str) -> Optional[FakeLnd]:
        name = host.rsplit(":", 1)[0]
        if not name.startswith(LND_CONTAINER_PREFIX):
            return None
        container = self.container_by_name(name)
        if container is None:
            return None
        return self.lnd.get(container.id)


@pytest.fixture
def runtime():
    return FakeContainerRuntime()


@pytest.fixture
def store(tmp_path):
    return NetworkStore(tmp_path / "data")


@pytest.fixture
def manager(runtime, store):
    return PolarManager(
        runtime=runtime,
        store=store,
        bitcoin_ready_timeout=1.0,
        lnd_sync_timeout=1.0,
        poll_interval=0.0,
    )


@pytest.fixture
def running_network(manager):
    """A started two-LND network with 101 blocks mined, so the miner holds 50 BTC."""
    manager.create_network("demo")
    manager.start_network("demo")
    manager.mine_blocks("demo", 101)
    return manager.get_network("demo")
