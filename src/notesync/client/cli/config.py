"""Configuration utilities for the notesync CLI.

The client configuration is a JSON file (default ~/.notesync/config.json)
holding api_url, auth_password, notes_dir and client_id.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from notesync.core.config import DEFAULT_CLIENT_ID, ConfigError, ServerConfig

REQUIRED_KEYS = ("api_url", "auth_password", "notes_dir")


def get_config_dir() -> Path:
    """Get the configuration directory for notesync.

    Returns:
        Path to ~/.notesync.
    """
    return Path.home() / ".notesync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config(config_file: Path | None = None) -> dict[str, str]:
    """Load configuration from config file.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    config_file = config_file or get_config_file()
    if not config_file.exists():
        return {}
    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read config file {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def save_config(config: dict[str, str], config_file: Path | None = None) -> Path:
    """Save configuration to config file, readable by the owner only."""
    config_file = config_file or get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2), encoding="utf-8")
    os.chmod(config_file, 0o600)
    return config_file


@dataclass
class ClientConfig:
    """Validated workstation configuration."""

    api_url: str
    auth_password: str
    notes_dir: Path
    client_id: str = DEFAULT_CLIENT_ID

    def server_config(self) -> ServerConfig:
        """Connection settings for the API clients."""
        return ServerConfig(
            server_url=self.api_url,
            password=self.auth_password,
            client_id=self.client_id,
        )


def load_client_config(config_file: Path | None = None) -> ClientConfig:
    """Load and validate the workstation configuration.

    Raises:
        ConfigError: If the file is missing, unreadable or incomplete.
    """
    config_file = config_file or get_config_file()
    config = load_config(config_file)
    if not config:
        raise ConfigError(f"No configuration found at {config_file}")

    missing = [key for key in REQUIRED_KEYS if not config.get(key)]
    if missing:
        raise ConfigError(f"Missing config keys in {config_file}: {', '.join(missing)}")

    return ClientConfig(
        api_url=config["api_url"],
        auth_password=config["auth_password"],
        notes_dir=Path(config["notes_dir"]).expanduser(),
        client_id=config.get("client_id") or DEFAULT_CLIENT_ID,
    )
