"""Interactive demo command for the offlinestore CLI.

Commands:
- demo: Drive an optimistic store from stdin

The demo plays the collaborator role: it dispatches domain actions, toggles
connectivity and renders the resulting state. Effects go to a simulated
authority unless a server URL is configured.
"""

from __future__ import annotations

import sys
import threading
from typing import TYPE_CHECKING

import click

from offlinestore.client.cli.config import get_server_config, setup_logging

if TYPE_CHECKING:
    from offlinestore.client.store import OfflineStore

HELP_TEXT = """\
Commands:
  add [AMOUNT]    add a new item (default amount 1)
  inc ID          increase an item's amount by 10
  retry ID        re-send a failed item
  online          report the network as online
  offline         report the network as offline
  status          show network, outbox and items
  wait [SECONDS]  wait until the outbox is drained or blocked
  help            show this help
  quit            leave the demo"""


def pluralize_actions(count: int) -> str:
    """Format the pending action count."""
    return f"{count} pending {'action' if count == 1 else 'actions'}"


def format_status(store: OfflineStore) -> list[str]:
    """Render the store for display.

    Args:
        store: The store to render.

    Returns:
        Output lines.
    """
    from offlinestore.core.types import QueueState

    status = store.get_network_status()
    pending = store.get_outbox_length()
    queue_state = QueueState.from_status(status.online, status.busy, pending)

    lines = [
        f"network: {'online' if status.online else 'offline'} ({queue_state.value})",
        pluralize_actions(pending),
        "items:",
    ]
    for item_id, item in store.get_state().items.items():
        flags = [flag for flag, on in (("pending", item.pending), ("error", item.error)) if on]
        suffix = f" [{', '.join(flags)}]" if flags else ""
        lines.append(f"  {item_id}  {item.amount}{suffix}")
    return lines


def _run_command(store: OfflineStore, command: str, args: list[str]) -> bool:
    """Execute one demo command.

    Returns:
        False when the session should end.
    """
    from offlinestore.client.store import add_item, increase_amount, retry_item

    state = store.get_state()

    if command in ("quit", "exit"):
        return False

    if command == "help":
        click.echo(HELP_TEXT)
    elif command == "add":
        amount = int(args[0]) if args else 1
        action = add_item(amount=amount)
        store.dispatch(action)
        click.echo(f"Added {action.payload['item_id']} ({amount})")
    elif command in ("inc", "retry"):
        if not args:
            click.echo(f"Error: usage: {command} ID", err=True)
            return True
        item_id = args[0]
        item = state.get(item_id)
        if item is None:
            click.echo(f"Error: unknown item {item_id}", err=True)
        elif command == "inc" and item.pending:
            click.echo(f"Error: item {item_id} is pending", err=True)
        elif command == "retry" and not item.error:
            click.echo(f"Error: item {item_id} has not failed", err=True)
        elif command == "inc":
            store.dispatch(increase_amount(item_id))
        else:
            store.dispatch(retry_item(state, item_id))
    elif command in ("online", "offline"):
        store.set_online(command == "online")
        click.echo(f"Network {command}")
    elif command == "status":
        for line in format_status(store):
            click.echo(line)
    elif command == "wait":
        timeout = float(args[0]) if args else 10.0
        if not store.wait_idle(timeout=timeout):
            click.echo(f"Still busy after {timeout:g}s")
    else:
        click.echo(f"Error: unknown command {command!r} (try 'help')", err=True)
    return True


@click.command()
@click.option(
    "--server-url",
    default=None,
    help="Send effects to this server instead of the simulated one.",
)
@click.option(
    "--success-rate",
    type=click.FloatRange(0.0, 1.0),
    default=0.5,
    show_default=True,
    help="Probability that a simulated effect succeeds.",
)
@click.option(
    "--max-delay",
    type=click.FloatRange(min=0.0),
    default=1.0,
    show_default=True,
    help="Maximum simulated latency in seconds.",
)
@click.option("--seed", type=int, default=None, help="Seed for the simulated effect.")
@click.option(
    "--online/--offline",
    "start_online",
    default=False,
    help="Initial network status (default: offline).",
)
@click.option(
    "--retry-network-errors",
    is_flag=True,
    help="Keep actions queued on connectivity errors instead of rolling back.",
)
@click.option(
    "--effect-timeout",
    type=click.FloatRange(min=0.0, min_open=True),
    default=None,
    help="Fail effects that take longer than this many seconds.",
)
@click.option(
    "--detect-interval",
    type=click.FloatRange(min=0.0, min_open=True),
    default=None,
    help="Poll the server health endpoint to detect connectivity (needs a server).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log queue activity.")
def demo(
    server_url: str | None,
    success_rate: float,
    max_delay: float,
    seed: int | None,
    start_online: bool,
    retry_network_errors: bool,
    effect_timeout: float | None,
    detect_interval: float | None,
    verbose: bool,
) -> None:
    """Drive an optimistic offline store interactively.

    Reads one command per line from stdin. Actions apply to the local state
    immediately and are reconciled with the remote authority while the
    network is online.
    """
    from offlinestore.client.api import HTTPEffect
    from offlinestore.client.store import (
        FailurePolicy,
        OfflineStore,
        SimulatedEffect,
        StoreConfig,
        initial_state,
        watch_connectivity,
    )

    setup_logging(verbose)

    server_config = get_server_config(server_url)
    if detect_interval is not None and server_config is None:
        click.echo("Error: --detect-interval requires a server URL.", err=True)
        sys.exit(1)

    effect: HTTPEffect | SimulatedEffect
    if server_config is not None:
        effect = HTTPEffect(server_config)
        click.echo(f"Sending effects to {server_config.server_url}")
    else:
        effect = SimulatedEffect(success_rate=success_rate, max_delay=max_delay, seed=seed)

    if retry_network_errors:
        policy = FailurePolicy.network_aware(effect_timeout=effect_timeout)
    else:
        policy = FailurePolicy(effect_timeout=effect_timeout)

    store = OfflineStore(
        effect=effect,
        initial_state=initial_state(),
        config=StoreConfig(start_online=start_online, failure_policy=policy),
    )

    stop_detecting = threading.Event()
    stdin = click.get_text_stream("stdin")
    interactive = stdin.isatty()

    with store:
        if detect_interval is not None and isinstance(effect, HTTPEffect):
            threading.Thread(
                target=watch_connectivity,
                args=(effect.health_check, store.set_online, stop_detecting, detect_interval),
                name="ConnectivityWatcher",
                daemon=True,
            ).start()

        if interactive:
            click.echo(HELP_TEXT)

        try:
            while True:
                if interactive:
                    click.echo("> ", nl=False)
                line = stdin.readline()
                if not line:
                    break
                parts = line.split()
                if not parts:
                    continue
                try:
                    if not _run_command(store, parts[0].lower(), parts[1:]):
                        break
                except ValueError as e:
                    click.echo(f"Error: {e}", err=True)
        finally:
            stop_detecting.set()

    if isinstance(effect, HTTPEffect):
        effect.close()
