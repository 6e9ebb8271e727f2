"""Server configuration commands for the offlinestore CLI.

Commands:
- server set: Store the server URL (and optional token)
- server show: Print the configured server
- server check: Query the server health endpoint
"""

from __future__ import annotations

import sys

import click

from offlinestore.client.cli.config import get_server_config, load_config, save_config


@click.group()
def server() -> None:
    """Remote authority settings.

    Effects of queued actions are sent to this server by 'offlinestore demo'.
    """


@server.command("set")
@click.argument("server_url")
@click.option("--token", default=None, help="Bearer token sent with every effect.")
def set_server(server_url: str, token: str | None) -> None:
    """Save the server URL."""
    config = load_config()
    config["server_url"] = server_url.rstrip("/")
    if token is not None:
        config["token"] = token
    save_config(config)
    click.echo(f"Server set to {config['server_url']}")


@server.command("show")
def show_server() -> None:
    """Print the configured server."""
    server_config = get_server_config()
    if server_config is None:
        click.echo("No server configured (effects are simulated).")
        return
    click.echo(f"Server: {server_config.server_url}")
    click.echo(f"Token: {'set' if server_config.token else 'not set'}")


@server.command("check")
def check_server() -> None:
    """Check that the server is reachable."""
    from offlinestore.client.api import HTTPEffect

    server_config = get_server_config()
    if server_config is None:
        click.echo("Error: No server configured. Run 'offlinestore server set URL' first.", err=True)
        sys.exit(1)

    with HTTPEffect(server_config) as effect:
        healthy = effect.health_check()

    if not healthy:
        click.echo(f"Server {server_config.server_url} is unreachable.", err=True)
        sys.exit(1)
    click.echo(f"Server {server_config.server_url} is online.")
