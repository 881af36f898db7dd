"""
Persistent network registry.

Each network lives in its own file, ``{data_dir}/networks/{network_id}.json``,
holding the pretty-printed JSON form of ``Network.to_dict()``.
"""

import json
import logging
import os
from pathlib import Path

from polarbox.commands.errors import PersistenceError
from polarbox.commands.models import Network
from polarbox.commands.utils import console

logger = logging.getLogger(__name__)

NETWORKS_DIR_NAME = "networks"


class NetworkStore:
    """Reads and writes network records under a data directory."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.networks_dir = self.data_dir / NETWORKS_DIR_NAME

    def _ensure_dir(self) -> None:
        try:
            self.networks_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                f"Could not create networks directory: {e}",
                path=str(self.networks_dir),
            ) from e

    def path_for(self, network: Network) -> Path:
        return self.networks_dir / f"{network.id}.json"

    def save(self, network: Network) -> None:
        """Write a network record atomically.

        Raises:
            PersistenceError: If the record cannot be written.
        """
        self._ensure_dir()
        path = self.path_for(network)
        temp_path = path.with_suffix(".tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(network.to_dict(), f, indent=2)

            try:
                os.chmod(temp_path, 0o600)
            except OSError:
                pass

            # Atomic rename
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(
                f"Could not save network '{network.name}': {e}", path=str(path)
            ) from e

        logger.debug("Saved network %s to %s", network.name, path)

    def load_all(self) -> list[Network]:
        """Load every readable network record.

        Unreadable or malformed files are skipped with a warning.
        """
        if not self.networks_dir.exists():
            return []

        networks = []
        for path in sorted(self.networks_dir.glob("*.json")):
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
                networks.append(Network.from_dict(data))
            except (
                OSError,
                json.JSONDecodeError,
                AttributeError,
                KeyError,
                TypeError,
                ValueError,
            ) as e:
                console.print(
                    f"[yellow]⚠️  Skipping invalid network file {path.name}: {e}[/yellow]"
                )
        return networks

    def delete(self, network: Network) -> None:
        """Remove a network record. Missing files are ignored.

        Raises:
            PersistenceError: If the file exists but cannot be removed.
        """
        path = self.path_for(network)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(
                f"Could not delete network '{network.name}': {e}", path=str(path)
            ) from e
        logger.debug("Deleted network file %s", path)
