"""Command-line interface for offlinestore.

This module provides the main CLI entry point and assembles all commands.

Commands:
- demo: Drive an optimistic offline store interactively
- server: Configure and check the remote authority
"""

from __future__ import annotations

import click

from offlinestore.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_server_config,
    load_config,
    save_config,
    setup_logging,
)
from offlinestore.client.cli.demo import demo
from offlinestore.client.cli.server import server


@click.group()
@click.version_option(package_name="offlinestore")
def cli() -> None:
    """offlinestore - Optimistic local state with an offline outbox."""


cli.add_command(demo)
cli.add_command(server)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_server_config",
    "load_config",
    "save_config",
    "setup_logging",
]
