"""Configuration utilities for the offlinestore CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from offlinestore.core.config import ServerConfig


def get_config_dir() -> Path:
    """Get the configuration directory for offlinestore.

    Returns:
        Path to ~/.offlinestore.
    """
    return Path.home() / ".offlinestore"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_server_config(server_url: str | None = None) -> ServerConfig | None:
    """Build the server configuration.

    Args:
        server_url: Explicit URL overriding the configured one.

    Returns:
        ServerConfig, or None when no server is configured.
    """
    config = load_config()
    url = server_url or config.get("server_url")
    if not url:
        return None
    return ServerConfig(server_url=url, token=config.get("token") or None)


class ClickEchoHandler(logging.Handler):
    """Logging handler writing records through ``click.echo`` to stderr.

    The stream is resolved on every record, so output follows whatever
    stderr click is currently bound to.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def setup_logging(verbose: bool = False) -> None:
    """Configure the offlinestore logger for CLI output.

    Args:
        verbose: Log DEBUG messages instead of WARNING and above.
    """
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    root_logger = logging.getLogger("offlinestore")
    for handler in root_logger.handlers[:]:
        if isinstance(handler, ClickEchoHandler):
            root_logger.removeHandler(handler)

    echo_handler = ClickEchoHandler()
    echo_handler.setFormatter(formatter)
    root_logger.addHandler(echo_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
