"""Network connectivity monitor.

This module provides:
- NetworkMonitor: Externally toggled online flag plus the executor's busy flag
- watch_connectivity: Health-check polling loop acting as a network detector

Real connectivity detection is left to the collaborator, which receives
``monitor.callback`` and invokes it with a boolean whenever connectivity
changes. Listeners only fire on actual transitions, so reporting "online"
twice wakes the executor once.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from offlinestore.client.store.types import NetworkStatus

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

NETWORK_CHECK_INTERVAL = 5.0  # seconds between connectivity checks


class NetworkMonitor:
    """Tracks connectivity and whether an effect is in flight.

    Usage:
        monitor = NetworkMonitor()
        monitor.subscribe(lambda online: print("online" if online else "offline"))

        detect_network(monitor.callback)  # collaborator toggles connectivity
    """

    def __init__(self, online: bool = False) -> None:
        """Initialize the monitor.

        Args:
            online: Initial connectivity (offline until a detector reports)
        """
        self._lock = threading.Lock()
        self._online = online
        self._busy = False
        self._transitions = 0
        self._listeners: list[Callable[[bool], None]] = []

    @property
    def callback(self) -> Callable[[bool], None]:
        """Network signal handed to the collaborator."""
        return self.set_online

    @property
    def transitions(self) -> int:
        """Number of connectivity transitions observed."""
        return self._transitions

    @property
    def busy(self) -> bool:
        """Check if an effect is in flight."""
        return self._busy

    def is_online(self) -> bool:
        """Check connectivity."""
        return self._online

    def status(self) -> NetworkStatus:
        """Get a connectivity snapshot."""
        with self._lock:
            return NetworkStatus(online=self._online, busy=self._busy)

    def subscribe(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        """Register a transition listener.

        Args:
            listener: Called with the new online flag on each transition

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> bool:
        """Report connectivity.

        Args:
            online: New connectivity flag

        Returns:
            True if this changed the flag
        """
        with self._lock:
            if self._online == online:
                return False
            self._online = online
            self._transitions += 1
            listeners = list(self._listeners)

        logger.info("Network is now %s", "online" if online else "offline")
        for listener in listeners:
            listener(online)
        return True

    def set_busy(self, busy: bool) -> None:
        """Mark whether an effect is in flight (executor only)."""
        with self._lock:
            self._busy = busy


def watch_connectivity(
    check: Callable[[], bool],
    report: Callable[[bool], None],
    stop_event: threading.Event,
    check_interval: float = NETWORK_CHECK_INTERVAL,
) -> None:
    """Poll a health check and report connectivity until stopped.

    Intended to run in a background thread as a real network detector,
    reporting every result to ``report`` (typically ``monitor.callback``).

    Args:
        check: Returns True if the remote authority is reachable
        report: Network signal receiving the result of each check
        stop_event: Set to end the loop
        check_interval: Seconds between checks
    """
    logger.debug("Watching connectivity (checking every %ss)", check_interval)
    while not stop_event.is_set():
        try:
            reachable = check()
        except Exception:
            logger.exception("Connectivity check failed")
            reachable = False
        report(reachable)
        stop_event.wait(check_interval)
    logger.debug("Stopped watching connectivity")
