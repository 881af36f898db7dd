"""
Application configuration for polarbox.

Settings are stored as TOML at ~/.polarbox/config.toml. When the file is
missing, a default configuration is written back so users have something to
edit.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import toml

from polarbox.commands.errors import PersistenceError

APP_NAME = "polarbox"
DEFAULT_CONFIG_PATH = Path.home() / ".polarbox" / "config.toml"


def default_data_dir() -> Path:
    """Return the platform's application-data directory for polarbox."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        return base / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME

    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home) / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


@dataclass
class AppConfig:
    """Where networks are stored and how to reach Docker."""

    data_dir: Path = field(default_factory=default_data_dir)
    docker_socket: Optional[str] = None  # e.g. unix:///var/run/docker.sock

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"data_dir": str(self.data_dir)}
        if self.docker_socket:
            result["docker_socket"] = self.docker_socket
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        data_dir = data.get("data_dir")
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else default_data_dir(),
            docker_socket=data.get("docker_socket") or None,
        )

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AppConfig":
        """Load configuration from disk, creating the default file if absent.

        Args:
            path: Config file location. Defaults to ~/.polarbox/config.toml.

        Raises:
            PersistenceError: If the file cannot be read, parsed or created.
        """
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH

        if not config_path.exists():
            config = cls()
            config.save(config_path)
            return config

        try:
            with open(config_path, encoding="utf-8") as f:
                data = toml.load(f)
        except (OSError, toml.TomlDecodeError) as e:
            raise PersistenceError(
                f"Could not read config file: {e}", path=str(config_path)
            ) from e

        return cls.from_dict(data)

    def save(self, path: Optional[Path] = None) -> None:
        """Write configuration as TOML.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                toml.dump(self.to_dict(), f)
        except OSError as e:
            raise PersistenceError(
                f"Could not write config file: {e}", path=str(config_path)
            ) from e
