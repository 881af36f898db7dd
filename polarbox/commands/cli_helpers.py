"""
Shared plumbing for click commands.
"""

import functools
import sys

import click

from polarbox.commands.config import AppConfig
from polarbox.commands.errors import PolarboxError
from polarbox.commands.manager import PolarManager
from polarbox.commands.utils import console


def get_manager(ctx: click.Context) -> PolarManager:
    """Return the PolarManager for this invocation, creating it on first use."""
    obj = ctx.ensure_object(dict)
    if obj.get("manager") is None:
        config = AppConfig.load(obj.get("config_path"))
        obj["manager"] = PolarManager(config=config)
    return obj["manager"]


def handle_errors(func):
    """Print PolarboxError as a red ✗ line and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PolarboxError as e:
            console.print(f"[red]✗ {e.message}[/red]")
            sys.exit(1)

    return wrapper
