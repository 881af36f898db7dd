#!/usr/bin/env python3
"""
Polarbox CLI
A Python CLI tool for running regtest Bitcoin/Lightning networks in Docker containers.
"""

from pathlib import Path
from typing import Optional

import click

from polarbox import __version__
from polarbox.commands import (
    add_node,
    check,
    close_channel,
    create,
    delete,
    fund,
    info,
    list_networks,
    mine,
    open_channel,
    pay,
    remove_node,
    start,
    stop,
    sync_chain,
    sync_graph,
)
from polarbox.commands.utils import configure_logging


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v, -vv).")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.polarbox/config.toml).",
)
@click.pass_context
def cli(ctx, verbose: int, config_path: Optional[Path]):
    """Polarbox CLI - Run regtest Lightning networks in Docker containers."""
    configure_logging(verbose)
    obj = ctx.ensure_object(dict)
    obj.setdefault("config_path", config_path)


# Network lifecycle
cli.add_command(list_networks)
cli.add_command(create)
cli.add_command(start)
cli.add_command(stop)
cli.add_command(delete)
cli.add_command(add_node)
cli.add_command(remove_node)
cli.add_command(info)
cli.add_command(check)

# Lightning workflows
cli.add_command(mine)
cli.add_command(fund)
cli.add_command(open_channel)
cli.add_command(close_channel)
cli.add_command(pay)
cli.add_command(sync_graph)
cli.add_command(sync_chain)


def main():
    """Main entry point for the polarbox CLI."""
    cli()


if __name__ == "__main__":
    main()
