"""
Network commands - create, start, stop and inspect regtest networks.
"""

from typing import Optional

import click
from rich import box
from rich.table import Table

from polarbox.commands.cli_helpers import get_manager, handle_errors
from polarbox.commands.constants import (
    BITCOIN_IMAGES,
    DEFAULT_ALIAS_PREFIX,
    DEFAULT_LND_COUNT,
    LND_IMAGES,
)
from polarbox.commands.models import LightningImpl, Network, NetworkStatus
from polarbox.commands.node_info import BitcoinNodeInfo, LndNodeInfo
from polarbox.commands.utils import console, format_endpoint, format_sats

STATUS_STYLES = {
    NetworkStatus.STOPPED: "white",
    NetworkStatus.STARTING: "yellow",
    NetworkStatus.RUNNING: "green",
    NetworkStatus.STOPPING: "yellow",
    NetworkStatus.ERROR: "red",
}


def _status(status: NetworkStatus) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.value}[/{style}]"


@click.command(name="list")
@click.pass_context
@handle_errors
def list_networks(ctx):
    """List all networks."""
    networks = get_manager(ctx).list_networks()
    if not networks:
        console.print("[yellow]No networks found[/yellow]")
        console.print("[cyan]Use 'polarbox create <name>' to create one[/cyan]")
        return

    table = Table(title="Networks", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Nodes", style="yellow")
    table.add_column("ID", style="white")

    for network in networks:
        table.add_row(
            network.name,
            _status(network.status),
            str(len(network.nodes)),
            network.id,
        )
    console.print(table)


@click.command()
@click.argument("name")
@click.option(
    "--lnd-count",
    type=click.IntRange(min=0),
    default=DEFAULT_LND_COUNT,
    show_default=True,
    help="Number of LND nodes to create.",
)
@click.option(
    "--alias-prefix",
    default=DEFAULT_ALIAS_PREFIX,
    show_default=True,
    help="Prefix for LND node aliases.",
)
@click.option(
    "--lnd-image",
    type=click.Choice(LND_IMAGES),
    default=None,
    help="LND image to pin for this network.",
)
@click.option(
    "--btc-image",
    type=click.Choice(BITCOIN_IMAGES),
    default=None,
    help="Bitcoin Core image to pin for this network.",
)
@click.pass_context
@handle_errors
def create(
    ctx,
    name: str,
    lnd_count: int,
    alias_prefix: str,
    lnd_image: Optional[str],
    btc_image: Optional[str],
):
    """Create a new network (does not start it)."""
    get_manager(ctx).create_network(
        name,
        lnd_count=lnd_count,
        alias_prefix=alias_prefix,
        lnd_version=lnd_image,
        btc_version=btc_image,
    )


@click.command()
@click.argument("name")
@click.pass_context
@handle_errors
def start(ctx, name: str):
    """Start a network."""
    network = get_manager(ctx).start_network(name)
    _print_network(network)


@click.command()
@click.argument("name")
@click.pass_context
@handle_errors
def stop(ctx, name: str):
    """Stop a network and remove its containers."""
    get_manager(ctx).stop_network(name)


@click.command()
@click.argument("name")
@click.option(
    "--force", "-f", is_flag=True, help="Delete without confirmation prompt"
)
@click.pass_context
@handle_errors
def delete(ctx, name: str, force: bool):
    """Delete a network, stopping it first if needed."""
    manager = get_manager(ctx)
    if name not in manager.networks:
        console.print(f"[yellow]Network '{name}' does not exist, nothing to delete[/yellow]")
        return
    if not force and not click.confirm(f"Delete network '{name}'?"):
        console.print("[yellow]Aborted[/yellow]")
        return
    manager.delete_network(name)


@click.command(name="add-node")
@click.argument("network")
@click.option(
    "--impl",
    "implementation",
    type=click.Choice([impl.short_name for impl in LightningImpl.all()]),
    default=LightningImpl.LND.short_name,
    show_default=True,
    help="Lightning implementation.",
)
@click.pass_context
@handle_errors
def add_node(ctx, network: str, implementation: str):
    """Add a Lightning node to a network."""
    impl = next(i for i in LightningImpl.all() if i.short_name == implementation)
    get_manager(ctx).add_lightning_node(network, impl)


@click.command(name="remove-node")
@click.argument("network")
@click.argument("node")
@click.pass_context
@handle_errors
def remove_node(ctx, network: str, node: str):
    """Remove a Lightning node from a network."""
    get_manager(ctx).delete_lightning_node(network, node)


@click.command()
@click.argument("network")
@click.argument("node", required=False)
@click.pass_context
@handle_errors
def info(ctx, network: str, node: Optional[str]):
    """Show a network's nodes, or details of one running node."""
    manager = get_manager(ctx)
    if node is None:
        _print_network(manager.get_network(network))
        return

    node_info = manager.get_node_info(network, node)
    if isinstance(node_info, BitcoinNodeInfo):
        _print_bitcoin_info(node, node_info)
    elif isinstance(node_info, LndNodeInfo):
        _print_lnd_info(node, node_info)


@click.command()
@click.pass_context
@handle_errors
def check(ctx):
    """Check that the Docker daemon is reachable."""
    get_manager(ctx).check_docker()
    console.print("[green]✓ Docker is available[/green]")


def _print_network(network: Network) -> None:
    table = Table(
        title=f"Network {network.name} ({network.status.value})", box=box.ROUNDED
    )
    table.add_column("Node", style="cyan")
    table.add_column("Kind", style="yellow")
    table.add_column("Host Ports", style="blue")
    table.add_column("Container", style="white")

    for node in network.nodes:
        ports = network.port_mappings.get(node.id)
        table.add_row(
            node.name,
            node.kind.display_name,
            ", ".join(str(p) for p in ports.all_ports()) if ports else "-",
            node.container_id[:12] if node.container_id else "-",
        )
    console.print(table)


def _print_bitcoin_info(name: str, node_info: BitcoinNodeInfo) -> None:
    table = Table(title=f"{name} (Bitcoin Core)", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Version", node_info.version)
    table.add_row("Chain", node_info.chain)
    table.add_row("Blocks", str(node_info.blocks))
    table.add_row("Connections", str(node_info.connections))
    table.add_row("Difficulty", f"{node_info.difficulty:g}")
    table.add_row("IBD Complete", "yes" if node_info.ibd_complete else "no")
    table.add_row("Balance", f"{node_info.balance} BTC")
    table.add_row("RPC", format_endpoint(node_info.rpc_host))
    table.add_row("P2P", format_endpoint(node_info.p2p_host))
    console.print(table)


def _print_lnd_info(name: str, node_info: LndNodeInfo) -> None:
    table = Table(title=f"{name} (LND)", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Alias", node_info.alias)
    table.add_row("Version", node_info.version)
    table.add_row("Pubkey", node_info.identity_pubkey)
    table.add_row("Peers", str(node_info.num_peers))
    table.add_row(
        "Channels",
        f"{node_info.num_active_channels} active, "
        f"{node_info.num_pending_channels} pending",
    )
    table.add_row("Synced to Chain", "yes" if node_info.synced_to_chain else "no")
    table.add_row("Synced to Graph", "yes" if node_info.synced_to_graph else "no")
    table.add_row("Block Height", str(node_info.block_height))
    table.add_row("Wallet Balance", format_sats(node_info.wallet_balance))
    table.add_row("Channel Balance", format_sats(node_info.channel_balance))
    table.add_row("REST", format_endpoint(node_info.rest_host))
    table.add_row("gRPC", format_endpoint(node_info.grpc_host))
    console.print(table)

    if not node_info.channels:
        return

    channels = Table(title="Channels", box=box.ROUNDED)
    channels.add_column("Channel Point", style="cyan")
    channels.add_column("Remote", style="blue")
    channels.add_column("Capacity", style="yellow")
    channels.add_column("Local", style="green")
    channels.add_column("Remote Balance", style="green")
    channels.add_column("Active")
    for channel in node_info.channels:
        channels.add_row(
            channel.channel_point,
            channel.remote_pubkey[:16] + "...",
            format_sats(channel.capacity),
            format_sats(channel.local_balance),
            format_sats(channel.remote_balance),
            "[green]yes[/green]" if channel.active else "[red]no[/red]",
        )
    console.print(channels)
