"""
Lightning workflow commands - mining, funding, channels and payments.
"""

from typing import Optional

import click

from polarbox.commands.cli_helpers import get_manager, handle_errors
from polarbox.commands.constants import DEFAULT_MINE_BLOCKS
from polarbox.commands.utils import console, format_sats


@click.command()
@click.argument("network")
@click.option(
    "--blocks",
    "-n",
    type=click.IntRange(min=1),
    default=DEFAULT_MINE_BLOCKS,
    show_default=True,
    help="Number of blocks to mine.",
)
@click.pass_context
@handle_errors
def mine(ctx, network: str, blocks: int):
    """Mine blocks on the network's Bitcoin Core node."""
    hashes = get_manager(ctx).mine_blocks(network, blocks)
    console.print(f"[green]✓ Mined {len(hashes)} block(s)[/green]")
    if hashes:
        console.print(f"[cyan]  Tip: {hashes[-1]}[/cyan]")


@click.command()
@click.argument("network")
@click.argument("node")
@click.argument("amount", type=float)
@click.option(
    "--no-mine",
    is_flag=True,
    help="Do not mine confirmation blocks after sending.",
)
@click.pass_context
@handle_errors
def fund(ctx, network: str, node: str, amount: float, no_mine: bool):
    """Send AMOUNT BTC from the Bitcoin Core wallet to an LND node."""
    txid = get_manager(ctx).fund_lnd_wallet(network, node, amount, auto_mine=not no_mine)
    console.print(f"[green]✓ Funded {node} with {amount} BTC[/green]")
    console.print(f"[cyan]  txid: {txid}[/cyan]")


@click.command(name="open-channel")
@click.argument("network")
@click.argument("from_node")
@click.argument("to_node")
@click.argument("capacity", type=click.IntRange(min=1))
@click.option(
    "--push",
    "push_amount",
    type=click.IntRange(min=0),
    default=None,
    help="Satoshis to push to the remote side on open.",
)
@click.pass_context
@handle_errors
def open_channel(
    ctx,
    network: str,
    from_node: str,
    to_node: str,
    capacity: int,
    push_amount: Optional[int],
):
    """Open a channel of CAPACITY sats from FROM_NODE to TO_NODE."""
    txid = get_manager(ctx).open_channel(
        network, from_node, to_node, capacity, push_amount
    )
    console.print(
        f"[green]✓ Opened {format_sats(capacity)} channel {from_node} -> {to_node}[/green]"
    )
    console.print(f"[cyan]  funding txid: {txid}[/cyan]")
    console.print("[yellow]Mine a few blocks to confirm the channel[/yellow]")


@click.command(name="close-channel")
@click.argument("network")
@click.argument("node")
@click.argument("channel_point")
@click.option("--force", "-f", is_flag=True, help="Force close unilaterally")
@click.pass_context
@handle_errors
def close_channel(ctx, network: str, node: str, channel_point: str, force: bool):
    """Close the channel CHANNEL_POINT (txid:index) from NODE."""
    txid = get_manager(ctx).close_channel(network, node, channel_point, force=force)
    console.print(f"[green]✓ Closing channel {channel_point}[/green]")
    console.print(f"[cyan]  closing txid: {txid}[/cyan]")


@click.command()
@click.argument("network")
@click.argument("from_node")
@click.argument("to_node")
@click.argument("amount", type=click.IntRange(min=1))
@click.option("--memo", "-m", default=None, help="Invoice description.")
@click.pass_context
@handle_errors
def pay(
    ctx, network: str, from_node: str, to_node: str, amount: int, memo: Optional[str]
):
    """Pay AMOUNT sats from FROM_NODE to TO_NODE."""
    payment_hash = get_manager(ctx).send_payment(
        network, from_node, to_node, amount, memo
    )
    console.print(
        f"[green]✓ Paid {format_sats(amount)} from {from_node} to {to_node}[/green]"
    )
    console.print(f"[cyan]  payment hash: {payment_hash}[/cyan]")


@click.command(name="sync-graph")
@click.argument("network")
@click.pass_context
@handle_errors
def sync_graph(ctx, network: str):
    """Connect every pair of LND nodes as peers."""
    count = get_manager(ctx).sync_graph(network)
    if count == 0:
        console.print("[yellow]Nothing to sync (fewer than two LND nodes)[/yellow]")
        return
    console.print(f"[green]✓ Meshed {count} LND node(s)[/green]")


@click.command(name="sync-chain")
@click.argument("network")
@click.pass_context
@handle_errors
def sync_chain(ctx, network: str):
    """Report how many LND nodes are synced to the chain."""
    manager = get_manager(ctx)
    synced = manager.sync_chain(network)
    running = sum(
        1 for node in manager.get_network(network).lightning_nodes() if node.is_running
    )
    if synced == running:
        console.print(f"[green]✓ {synced}/{running} LND node(s) synced to chain[/green]")
    else:
        console.print(
            f"[yellow]⚠️  {synced}/{running} LND node(s) synced to chain[/yellow]"
        )
