"""
Unit tests for network lifecycle in PolarManager.
"""

import pytest

from polarbox.commands.errors import (
    ContainerRuntimeError,
    DomainConfigError,
    ForbiddenDeletionError,
    NetworkExistsError,
    NetworkNotFoundError,
    NodeNotFoundError,
    ReadinessTimeoutError,
)
from polarbox.commands.manager import PolarManager
from polarbox.commands.models import BitcoinCorePorts, LndPorts, NetworkStatus, NodeKind


def _reload(store):
    return {network.name: network for network in store.load_all()}


class TestCreateNetwork:
    def test_creates_bitcoin_and_lnd_nodes(self, manager, store):
        network = manager.create_network("demo", lnd_count=3)

        assert [n.name for n in network.nodes] == [
            "bitcoin-1",
            "lnd-1",
            "lnd-2",
            "lnd-3",
        ]
        assert network.nodes[0].kind is NodeKind.BITCOIN_CORE
        assert network.status is NetworkStatus.STOPPED
        assert _reload(store)["demo"] == network

    def test_no_containers_until_started(self, manager, runtime):
        manager.create_network("demo")
        assert runtime.containers == {}

    def test_zero_lnd_nodes(self, manager):
        network = manager.create_network("solo", lnd_count=0)
        assert [n.name for n in network.nodes] == ["bitcoin-1"]

    def test_duplicate_name(self, manager):
        manager.create_network("demo")
        with pytest.raises(NetworkExistsError):
            manager.create_network("demo")

    def test_negative_count(self, manager):
        with pytest.raises(DomainConfigError):
            manager.create_network("demo", lnd_count=-1)

    def test_pinned_versions(self, manager, runtime):
        manager.create_network(
            "demo",
            lnd_count=1,
            lnd_version="polarlightning/lnd:0.17.5-beta",
            btc_version="polarlightning/bitcoind:27.0",
        )
        manager.start_network("demo")
        images = sorted(c.image for c in runtime.containers.values())
        assert images == [
            "polarlightning/bitcoind:27.0",
            "polarlightning/lnd:0.17.5-beta",
        ]

    def test_unknown_network(self, manager):
        with pytest.raises(NetworkNotFoundError):
            manager.get_network("missing")

    def test_list_sorted_by_name(self, manager):
        manager.create_network("zeta")
        manager.create_network("alpha")
        assert [n.name for n in manager.list_networks()] == ["alpha", "zeta"]


class TestStartNetwork:
    def test_start(self, manager, runtime, store):
        """Test every node gets a running container on the network's bridge."""
        network = manager.create_network("demo")
        manager.start_network("demo")

        assert network.status is NetworkStatus.RUNNING
        assert network.docker_network_name in runtime.networks
        assert len(runtime.running_containers()) == 3
        assert all(node.container_id for node in network.nodes)
        assert all(
            c.network == network.docker_network_name for c in runtime.containers.values()
        )
        assert runtime.chain.wallets == {"default"}
        assert _reload(store)["demo"].status is NetworkStatus.RUNNING

    def test_bitcoin_starts_first(self, manager, runtime):
        network = manager.create_network("demo")
        manager.start_network("demo")

        created = [call[1] for call in runtime.calls if call[0] == "create_container"]
        assert created[0] == f"polar-btc-{network.bitcoin_node().id}"

    def test_ports_allocated_and_persisted(self, manager, store):
        network = manager.create_network("demo")
        manager.start_network("demo")

        btc, lnd1, lnd2 = network.nodes
        assert network.port_mappings[btc.id] == BitcoinCorePorts(
            rpc=20000, p2p=20001, zmq_block=20002, zmq_tx=20003
        )
        assert network.port_mappings[lnd1.id] == LndPorts(
            rest=20010, grpc=20011, p2p=20012
        )
        assert network.port_mappings[lnd2.id].rest == 20020
        assert _reload(store)["demo"].port_mappings == network.port_mappings

    def test_start_is_idempotent(self, manager, runtime):
        """Test starting a running network issues no container operations."""
        manager.create_network("demo")
        manager.start_network("demo")
        calls_before = len(runtime.calls)

        manager.start_network("demo")

        assert len(runtime.calls) == calls_before

    def test_waits_for_bitcoin_rpc(self, manager, runtime):
        runtime.bitcoin_warmup = 3
        network = manager.create_network("demo")
        manager.start_network("demo")
        assert network.status is NetworkStatus.RUNNING

    def test_bitcoin_never_ready(self, manager, runtime, store):
        """Test a bitcoind that never answers leaves the network in Error."""
        runtime.bitcoin_warmup = 10**9
        manager.bitcoin_ready_timeout = 0.05
        network = manager.create_network("demo")

        with pytest.raises(ReadinessTimeoutError):
            manager.start_network("demo")

        assert network.status is NetworkStatus.ERROR
        assert _reload(store)["demo"].status is NetworkStatus.ERROR

    def test_container_failure_sets_error(self, manager, runtime, store):
        runtime.fail_on_start.add("polar-lnd")
        network = manager.create_network("demo")

        with pytest.raises(ContainerRuntimeError):
            manager.start_network("demo")

        assert network.status is NetworkStatus.ERROR
        assert _reload(store)["demo"].status is NetworkStatus.ERROR

    def test_stop_after_error_cleans_up(self, manager, runtime):
        runtime.fail_on_start.add("polar-lnd")
        network = manager.create_network("demo")
        with pytest.raises(ContainerRuntimeError):
            manager.start_network("demo")

        manager.stop_network("demo")

        assert network.status is NetworkStatus.STOPPED
        assert runtime.running_containers() == []
        assert runtime.containers == {}

    def test_failed_container_is_tracked_for_removal(self, manager, runtime, store):
        """Test a container that was created but failed to start is removed on stop."""
        runtime.fail_on_start.add("polar-lnd")
        network = manager.create_network("demo")
        with pytest.raises(ContainerRuntimeError):
            manager.start_network("demo")

        failed = network.find_node("lnd-1")
        assert failed.container_id in runtime.containers
        assert _reload(store)["demo"].find_node("lnd-1").container_id == failed.container_id

        manager.stop_network("demo")

        assert runtime.containers == {}
        assert all(node.container_id is None for node in network.nodes)

    def test_restart_reuses_wallet_and_ports(self, manager, runtime):
        network = manager.create_network("demo")
        manager.start_network("demo")
        ports = dict(network.port_mappings)
        manager.stop_network("demo")

        manager.start_network("demo")

        assert network.status is NetworkStatus.RUNNING
        assert network.port_mappings == ports
        assert len(runtime.running_containers()) == 3


class TestStopNetwork:
    def test_stop(self, manager, runtime, store):
        network = manager.create_network("demo")
        manager.start_network("demo")

        manager.stop_network("demo")

        assert network.status is NetworkStatus.STOPPED
        assert runtime.containers == {}
        assert network.docker_network_name not in runtime.networks
        assert all(node.container_id is None for node in network.nodes)
        assert _reload(store)["demo"].status is NetworkStatus.STOPPED

    def test_lnd_nodes_stop_before_bitcoin(self, manager, runtime):
        network = manager.create_network("demo")
        manager.start_network("demo")
        btc_id = network.bitcoin_node().container_id
        lnd_ids = {node.container_id for node in network.lightning_nodes()}

        manager.stop_network("demo")

        stopped = [call[1] for call in runtime.calls if call[0] == "stop_container"]
        assert stopped[-1] == btc_id
        assert set(stopped[:-1]) == lnd_ids

    def test_stop_is_idempotent(self, manager, runtime):
        """Test stopping a stopped network issues no container operations."""
        manager.create_network("demo")
        manager.stop_network("demo")
        assert runtime.calls == []

    def test_container_already_gone(self, manager, runtime):
        network = manager.create_network("demo")
        manager.start_network("demo")
        del runtime.containers[network.nodes[1].container_id]

        manager.stop_network("demo")

        assert network.status is NetworkStatus.STOPPED


class TestDeleteNetwork:
    def test_delete_running_network(self, manager, runtime, store):
        manager.create_network("demo")
        manager.start_network("demo")

        manager.delete_network("demo")

        assert runtime.containers == {}
        assert "demo" not in manager.networks
        assert _reload(store) == {}

    def test_delete_missing_is_noop(self, manager):
        manager.delete_network("missing")

    def test_name_is_reusable(self, manager):
        manager.create_network("demo")
        manager.delete_network("demo")
        assert manager.create_network("demo").name == "demo"


class TestLightningNodes:
    def test_add_to_stopped_network(self, manager, runtime):
        manager.create_network("demo")
        name = manager.add_lightning_node("demo")

        node = manager.get_network("demo").find_node(name)
        assert name == "lnd-3"
        assert node.container_id is None
        assert runtime.containers == {}

    def test_add_to_running_network_starts_node(self, manager, runtime, store):
        manager.create_network("demo")
        manager.start_network("demo")

        name = manager.add_lightning_node("demo")

        network = manager.get_network("demo")
        node = network.find_node(name)
        assert runtime.containers[node.container_id].running
        assert network.port_mappings[node.id].rest == 20030
        assert _reload(store)["demo"].find_node(name) is not None

    def test_names_stay_unique_after_deletion(self, manager):
        manager.create_network("demo")
        manager.delete_lightning_node("demo", "lnd-1")

        assert manager.add_lightning_node("demo") == "lnd-3"

    @pytest.mark.parametrize("state", ["stopped", "running", "error"])
    def test_delete_bitcoin_node_forbidden(self, manager, runtime, store, state):
        """Test the mandatory Bitcoin Core node cannot be removed in any status."""
        network = manager.create_network("demo")
        if state == "running":
            manager.start_network("demo")
        elif state == "error":
            runtime.fail_on_start.add("polar-lnd")
            with pytest.raises(ContainerRuntimeError):
                manager.start_network("demo")
        status = network.status
        before = [(n.id, n.name, n.container_id) for n in network.nodes]
        bitcoin_container = network.bitcoin_node().container_id
        saved = [(n.id, n.name) for n in _reload(store)["demo"].nodes]

        with pytest.raises(ForbiddenDeletionError):
            manager.delete_lightning_node("demo", "bitcoin-1")

        assert network.status is status
        assert [(n.id, n.name, n.container_id) for n in network.nodes] == before
        assert [(n.id, n.name) for n in _reload(store)["demo"].nodes] == saved
        if bitcoin_container is not None:
            assert bitcoin_container in runtime.containers
            assert runtime.containers[bitcoin_container].running

    def test_delete_running_node(self, manager, runtime, store):
        """Test removing a node stops its container and updates the store."""
        network = manager.create_network("demo")
        manager.start_network("demo")
        node = network.find_node("lnd-2")
        container_id = node.container_id

        manager.delete_lightning_node("demo", "lnd-2")

        assert container_id not in runtime.containers
        assert network.find_node("lnd-2") is None
        assert _reload(store)["demo"].find_node("lnd-2") is None

    def test_delete_unknown_node(self, manager):
        manager.create_network("demo")
        with pytest.raises(NodeNotFoundError):
            manager.delete_lightning_node("demo", "lnd-9")


class TestPersistence:
    def test_new_manager_sees_saved_networks(self, manager, runtime, store):
        manager.create_network("demo")
        manager.start_network("demo")

        reopened = PolarManager(runtime=runtime, store=store, poll_interval=0.0)

        network = reopened.get_network("demo")
        assert network.status is NetworkStatus.RUNNING
        assert len(network.nodes) == 3

    def test_duplicate_names_on_disk(self, manager, runtime, store):
        first = manager.create_network("demo")
        first.id = "another-id"
        store.save(first)

        reopened = PolarManager(runtime=runtime, store=store)
        assert len(reopened.list_networks()) == 1
