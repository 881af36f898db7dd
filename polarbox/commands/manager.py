"""
Polar Manager - Core functionality for managing regtest Lightning networks in Docker.

PolarManager owns the in-memory registry of networks, drives each network
through its lifecycle (Stopped -> Starting -> Running -> Stopping -> Stopped,
or Error) and runs the composite workflows (mining, funding, channels,
payments, sync) by issuing CLI RPC calls through the node drivers.

Every mutation of a network is persisted before the operation returns. Steps
inside one operation run strictly in order; callers that need concurrency go
through ManagerActor.
"""

import logging
from typing import Callable, Optional

from polarbox.commands.config import AppConfig
from polarbox.commands.constants import (
    BITCOIN_NODE_NAME,
    BITCOIN_READY_TIMEOUT,
    DEFAULT_ALIAS_PREFIX,
    DEFAULT_LND_COUNT,
    DEFAULT_MINE_BLOCKS,
    ERROR_NO_BITCOIN_NODE,
    FUNDING_CONFIRMATIONS,
    LABEL_NETWORK,
    LND_SYNC_TIMEOUT,
    READY_POLL_INTERVAL,
)
from polarbox.commands.errors import (
    ContainerRuntimeError,
    DomainConfigError,
    ForbiddenDeletionError,
    InsufficientFundsError,
    NetworkExistsError,
    NetworkNotFoundError,
    NodeNotFoundError,
    PolarboxError,
    RpcCommandError,
)
from polarbox.commands.managers.container import ContainerManager
from polarbox.commands.models import (
    LightningImpl,
    Network,
    NetworkStatus,
    Node,
    NodeKind,
)
from polarbox.commands.node_info import NodeInfo, gather_bitcoin_info, gather_lnd_info
from polarbox.commands.nodes import BitcoinNode, LndNode, NodeDriver, create_driver
from polarbox.commands.polling import poll_until
from polarbox.commands.ports import allocate_ports
from polarbox.commands.store import NetworkStore
from polarbox.commands.utils import console

logger = logging.getLogger(__name__)


class PolarManager:
    """Creates, starts, stops and operates regtest Lightning networks."""

    def __init__(
        self,
        runtime: Optional[ContainerManager] = None,
        store: Optional[NetworkStore] = None,
        config: Optional[AppConfig] = None,
        bitcoin_ready_timeout: float = BITCOIN_READY_TIMEOUT,
        lnd_sync_timeout: float = LND_SYNC_TIMEOUT,
        poll_interval: float = READY_POLL_INTERVAL,
    ):
        """
        Initialize the PolarManager.

        Args:
            runtime: Container runtime. Defaults to a ContainerManager connected
                through ``config.docker_socket`` or the environment.
            store: Network store. Defaults to one under ``config.data_dir``.
            config: Application config, loaded from disk when not given and
                something above needs it.
            bitcoin_ready_timeout: Seconds to wait for bitcoind RPC after start.
            lnd_sync_timeout: Seconds to wait for LND to see freshly mined blocks.
            poll_interval: Seconds between readiness checks.
        """
        if runtime is None or store is None:
            config = config or AppConfig.load()
        self.config = config
        self.runtime = runtime or ContainerManager(docker_socket=config.docker_socket)
        self.store = store or NetworkStore(config.data_dir)
        self.bitcoin_ready_timeout = bitcoin_ready_timeout
        self.lnd_sync_timeout = lnd_sync_timeout
        self.poll_interval = poll_interval

        self.networks: dict[str, Network] = {}
        for network in self.store.load_all():
            if network.name in self.networks:
                console.print(
                    f"[yellow]⚠️  Duplicate network name '{network.name}' on disk, "
                    f"ignoring {network.id}[/yellow]"
                )
                continue
            self.networks[network.name] = network
        logger.debug("Loaded %d network(s)", len(self.networks))

    # Lookups

    def list_networks(self) -> list[Network]:
        return sorted(self.networks.values(), key=lambda n: n.name)

    def get_network(self, name: str) -> Network:
        """Return a network by name.

        Raises:
            NetworkNotFoundError: If no network has that name.
        """
        network = self.networks.get(name)
        if network is None:
            raise NetworkNotFoundError(name)
        return network

    def _get_node(
        self, network: Network, node_name: str, kind: Optional[NodeKind] = None
    ) -> Node:
        node = network.find_node(node_name)
        if node is None or (kind is not None and node.kind is not kind):
            raise NodeNotFoundError(node_name, network.name)
        return node

    def _driver(self, network: Network, node: Node) -> NodeDriver:
        return create_driver(network, node, self.runtime)

    def _bitcoin(self, network: Network) -> BitcoinNode:
        node = network.bitcoin_node()
        if node is None:
            raise DomainConfigError(ERROR_NO_BITCOIN_NODE, code="NO_BITCOIN_NODE")
        return self._driver(network, node)

    def _lnd(self, network: Network, node_name: str) -> LndNode:
        return self._driver(network, self._get_node(network, node_name, NodeKind.LND))

    def _save(self, network: Network) -> None:
        self.store.save(network)

    def _fail(self, network: Network, error: PolarboxError) -> None:
        """Record a failed transition as status Error."""
        network.status = NetworkStatus.ERROR
        logger.error("Network %s failed: %s", network.name, error)
        try:
            self._save(network)
        except PolarboxError as save_error:
            logger.error(
                "Could not persist error state of %s: %s", network.name, save_error
            )

    def check_docker(self) -> bool:
        """Ping the Docker daemon.

        Raises:
            ContainerRuntimeError: If Docker is unreachable.
        """
        return self.runtime.ping()

    # Lifecycle

    def create_network(
        self,
        name: str,
        lnd_count: int = DEFAULT_LND_COUNT,
        alias_prefix: str = DEFAULT_ALIAS_PREFIX,
        lnd_version: Optional[str] = None,
        btc_version: Optional[str] = None,
    ) -> Network:
        """Register a new stopped network with one Bitcoin Core node and N LND nodes.

        Raises:
            NetworkExistsError: If the name is already taken.
            PersistenceError: If the network cannot be saved.
        """
        if name in self.networks:
            raise NetworkExistsError(name)
        if lnd_count < 0:
            raise DomainConfigError("LND node count cannot be negative")

        network = Network(
            name=name,
            lnd_version=lnd_version,
            btc_version=btc_version,
            alias_prefix=alias_prefix,
        )
        network.add_node(Node(name=BITCOIN_NODE_NAME, kind=NodeKind.BITCOIN_CORE))
        short_name = LightningImpl.LND.short_name
        for i in range(1, lnd_count + 1):
            network.add_node(Node(name=f"{short_name}-{i}", kind=NodeKind.LND))

        self._save(network)
        self.networks[name] = network
        console.print(
            f"[green]✓ Created network {name} with {lnd_count} LND node(s)[/green]"
        )
        return network

    def start_network(self, name: str) -> Network:
        """Start every node of a network.

        The Bitcoin Core node starts first and must answer RPC calls before the
        LND nodes, which use it as their chain backend, are started. On failure
        the network is left in status Error with whatever containers were already
        created; stop it to clean up.

        Raises:
            NetworkNotFoundError: If the network does not exist.
            ContainerRuntimeError: If Docker fails.
            ReadinessTimeoutError: If bitcoind never answers.
        """
        network = self.get_network(name)
        if network.status is NetworkStatus.RUNNING:
            logger.debug("Network %s already running", name)
            return network

        console.print(f"[yellow]Starting network {name}...[/yellow]")
        network.status = NetworkStatus.STARTING
        try:
            self.runtime.create_network(
                network.docker_network_name, labels={LABEL_NETWORK: name}
            )
            for node in network.nodes:
                allocate_ports(network, node)

            bitcoin = self._bitcoin(network)
            self._start_node(network, bitcoin)
            bitcoin.wait_until_ready(self.bitcoin_ready_timeout, self.poll_interval)
            bitcoin.create_wallet()

            for node in network.lightning_nodes():
                self._start_node(network, self._driver(network, node))
        except PolarboxError as e:
            self._fail(network, e)
            console.print(f"[red]✗ Failed to start network {name}: {e.message}[/red]")
            raise

        network.status = NetworkStatus.RUNNING
        self._save(network)
        console.print(f"[green]✓ Network {name} is running[/green]")
        return network

    def _start_node(self, network: Network, driver: NodeDriver) -> None:
        ports = allocate_ports(network, driver.node)
        console.print(f"[cyan]Starting {driver.node.name} ({driver.image})[/cyan]")
        driver.start(ports)
        console.print(f"[green]✓ {driver.node.name} started[/green]")

    def stop_network(self, name: str) -> Network:
        """Stop and remove every container of a network, LND nodes first.

        Raises:
            NetworkNotFoundError: If the network does not exist.
            ContainerRuntimeError: If Docker fails to stop a container.
        """
        network = self.get_network(name)
        if network.status is NetworkStatus.STOPPED:
            logger.debug("Network %s already stopped", name)
            return network

        console.print(f"[yellow]Stopping network {name}...[/yellow]")
        network.status = NetworkStatus.STOPPING
        try:
            for node in network.lightning_nodes():
                self._driver(network, node).stop()
            bitcoin = network.bitcoin_node()
            if bitcoin is not None:
                self._driver(network, bitcoin).stop()
        except PolarboxError as e:
            self._fail(network, e)
            console.print(f"[red]✗ Failed to stop network {name}: {e.message}[/red]")
            raise

        try:
            self.runtime.remove_network(network.docker_network_name)
        except ContainerRuntimeError as e:
            console.print(
                f"[yellow]⚠️  Warning: Failed to remove network "
                f"{network.docker_network_name}: {e.message}[/yellow]"
            )

        network.status = NetworkStatus.STOPPED
        self._save(network)
        console.print(f"[green]✓ Network {name} stopped[/green]")
        return network

    def delete_network(self, name: str) -> None:
        """Delete a network, stopping it first if it is running.

        Deleting a network that does not exist is a no-op.
        """
        network = self.networks.get(name)
        if network is None:
            logger.debug("Network %s does not exist, nothing to delete", name)
            return

        if network.status is NetworkStatus.RUNNING:
            self.stop_network(name)

        self.store.delete(network)
        del self.networks[name]
        console.print(f"[green]✓ Deleted network {name}[/green]")

    def add_lightning_node(
        self, network_name: str, implementation: LightningImpl = LightningImpl.LND
    ) -> str:
        """Add a Lightning node, starting it right away if the network is running.

        Returns:
            The new node's name.
        """
        network = self.get_network(network_name)
        kind = implementation.node_kind

        number = len(network.nodes_of_kind(kind)) + 1
        node_name = f"{implementation.short_name}-{number}"
        while network.find_node(node_name) is not None:
            number += 1
            node_name = f"{implementation.short_name}-{number}"

        node = Node(name=node_name, kind=kind)
        network.add_node(node)

        if network.status is NetworkStatus.RUNNING:
            try:
                self._start_node(network, self._driver(network, node))
            except PolarboxError:
                # keep the node; it will start with the network next time
                self._save(network)
                raise

        self._save(network)
        console.print(f"[green]✓ Added {implementation} node {node_name}[/green]")
        return node_name

    def delete_lightning_node(self, network_name: str, node_name: str) -> None:
        """Remove a Lightning node, stopping its container if it has one.

        Raises:
            ForbiddenDeletionError: For the network's Bitcoin Core node.
        """
        network = self.get_network(network_name)
        node = self._get_node(network, node_name)
        if node.kind is NodeKind.BITCOIN_CORE:
            raise ForbiddenDeletionError(node_name)

        if node.container_id is not None:
            self._driver(network, node).stop()

        network.nodes = [n for n in network.nodes if n.id != node.id]
        self._save(network)
        console.print(f"[green]✓ Removed node {node_name} from {network_name}[/green]")

    # Workflows

    def mine_blocks(
        self, network_name: str, num_blocks: int = DEFAULT_MINE_BLOCKS
    ) -> list[str]:
        """Mine blocks on the network's Bitcoin Core node.

        Returns:
            The mined block hashes.
        """
        network = self.get_network(network_name)
        hashes = self._bitcoin(network).mine_blocks(num_blocks)
        logger.info("Mined %d block(s) in %s", len(hashes), network_name)
        return hashes

    def fund_lnd_wallet(
        self, network_name: str, node_name: str, amount: float, auto_mine: bool = True
    ) -> str:
        """Send ``amount`` BTC from the Bitcoin Core wallet to an LND node.

        With ``auto_mine``, confirmation blocks are mined and the call waits
        until the LND node has caught up with the new tip.

        Returns:
            The funding transaction id.

        Raises:
            InsufficientFundsError: If the Bitcoin wallet holds less than
                ``amount``. Nothing is sent in that case.
            ReadinessTimeoutError: If LND does not sync in time.
        """
        network = self.get_network(network_name)
        bitcoin = self._bitcoin(network)
        lnd = self._lnd(network, node_name)

        balance = bitcoin.get_balance()
        if balance < amount:
            raise InsufficientFundsError(available=balance, required=amount)

        address = lnd.get_new_address()
        txid = bitcoin.send_to_address(address, amount)
        logger.info("Sent %s BTC to %s (%s): %s", amount, node_name, address, txid)

        if auto_mine:
            bitcoin.mine_blocks(FUNDING_CONFIRMATIONS)
            self._wait_for_chain_sync(lnd, bitcoin.get_block_count())

        return txid

    def _wait_for_chain_sync(self, lnd: LndNode, height: int) -> None:
        def synced() -> bool:
            info = lnd.get_info()
            return bool(info.get("synced_to_chain")) and (
                int(info.get("block_height") or 0) >= height
            )

        poll_until(
            synced,
            timeout=self.lnd_sync_timeout,
            interval=self.poll_interval,
            description=f"{lnd.name} to sync to block {height}",
        )

    def open_channel(
        self,
        network_name: str,
        from_node: str,
        to_node: str,
        capacity: int,
        push_amount: Optional[int] = None,
    ) -> str:
        """Connect two LND nodes and open a channel between them.

        Returns:
            The funding transaction id.
        """
        network = self.get_network(network_name)
        source = self._lnd(network, from_node)
        target = self._lnd(network, to_node)

        pubkey = target.get_pubkey()
        self._connect(source, pubkey, target.peer_address)
        return source.open_channel(pubkey, capacity, push_amount)

    @staticmethod
    def _connect(source: LndNode, pubkey: str, host: str) -> None:
        try:
            source.connect_peer(pubkey, host)
        except RpcCommandError as e:
            if "already connected" not in e.output:
                raise
            logger.debug("%s already connected to %s", source.name, pubkey)

    def close_channel(
        self, network_name: str, node_name: str, channel_point: str, force: bool = False
    ) -> str:
        """Close a channel identified by ``txid:output_index``.

        Returns:
            The closing transaction id.
        """
        network = self.get_network(network_name)
        return self._lnd(network, node_name).close_channel(channel_point, force=force)

    def send_payment(
        self,
        network_name: str,
        from_node: str,
        to_node: str,
        amount: int,
        memo: Optional[str] = None,
    ) -> str:
        """Have ``to_node`` issue an invoice and ``from_node`` pay it.

        Returns:
            The payment hash.
        """
        network = self.get_network(network_name)
        payer = self._lnd(network, from_node)
        payee = self._lnd(network, to_node)

        payment_request = payee.create_invoice(amount, memo)
        return payer.pay_invoice(payment_request)

    def sync_graph(self, network_name: str) -> int:
        """Connect every pair of LND nodes as peers.

        Failures to connect (typically "already connected") are ignored;
        failures to look up a peer's identity are not.

        Returns:
            The number of LND nodes meshed, 0 when there are fewer than two.
        """
        network = self.get_network(network_name)
        drivers = [self._driver(network, node) for node in network.lightning_nodes()]
        if len(drivers) < 2:
            return 0

        for i, source in enumerate(drivers):
            for target in drivers[i + 1 :]:
                pubkey = target.get_pubkey()
                try:
                    source.connect_peer(pubkey, target.peer_address)
                except PolarboxError as e:
                    logger.debug(
                        "Connect %s -> %s skipped: %s", source.name, target.name, e
                    )
        return len(drivers)

    def sync_chain(self, network_name: str) -> int:
        """Count running LND nodes that report being synced to the chain.

        This is a single snapshot, not a wait. Nodes without a container are
        skipped and nodes whose RPC fails count as unsynced.
        """
        network = self.get_network(network_name)
        synced = 0
        for node in network.lightning_nodes():
            if node.container_id is None:
                continue
            try:
                info = self._driver(network, node).get_info()
            except PolarboxError as e:
                logger.debug("getinfo failed on %s: %s", node.name, e)
                continue
            if isinstance(info, dict) and info.get("synced_to_chain") is True:
                synced += 1
        return synced

    def get_node_info(self, network_name: str, node_name: str) -> NodeInfo:
        """Summarize a running node.

        Raises:
            NodeNotFoundError: If the node does not exist.
            NodeNotRunningError: If the node has no container.
        """
        network = self.get_network(network_name)
        driver = self._driver(network, self._get_node(network, node_name))
        gatherers: dict[NodeKind, Callable[[NodeDriver], NodeInfo]] = {
            NodeKind.BITCOIN_CORE: gather_bitcoin_info,
            NodeKind.LND: gather_lnd_info,
        }
        return gatherers[driver.kind](driver)
