"""
Shared console and logging helpers.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()


def configure_logging(verbosity: int = 0) -> None:
    """Route stdlib logging through rich.

    Args:
        verbosity: 0 for warnings only, 1 for info, 2 or more for debug.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # docker-py and urllib3 are chatty at debug level
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
    logging.getLogger("docker").setLevel(max(level, logging.INFO))


def format_sats(amount: int) -> str:
    return f"{amount:,} sats"


def format_endpoint(endpoint: str) -> str:
    """Render an ``ip:port`` endpoint, or a dash when unknown."""
    return endpoint or "-"
