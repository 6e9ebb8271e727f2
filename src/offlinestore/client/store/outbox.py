"""Outbox of actions awaiting remote realization.

This module provides:
- Outbox: Thread-safe FIFO of OutboxEntry objects

Entry types (OutboxEntry) are in types.py.

The outbox is the single source of truth for "what remains to be
reconciled". Entries leave in exactly the order they were enqueued:
the order mutations were issued is the order they are confirmed, so two
increments on the same item commit in issue order, never completion order.

Unlike a work queue, reading the head does not consume it:

    entry = outbox.peek_head()      # oldest unresolved entry
    ...                             # effect runs, reconciler dispatches
    outbox.remove_head(entry)       # only now does the entry leave

The queue is kept in memory only; surviving a process restart is not
supported.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from typing import TYPE_CHECKING

from offlinestore.client.store.types import OutboxEntry, OutboxError, OutboxFullError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)


class Outbox:
    """Thread-safe FIFO of pending offline actions.

    Attributes:
        max_size: Maximum outbox size (0 = unlimited)
    """

    def __init__(self, max_size: int = 0) -> None:
        """Initialize the outbox.

        Args:
            max_size: Maximum number of entries (0 = unlimited)
        """
        self._lock = threading.RLock()
        self._entries: deque[OutboxEntry] = deque()
        self._max_size = max_size
        self._closed = False
        self._listeners: list[Callable[[OutboxEntry], None]] = []
        self._sequence = itertools.count(1)

    @property
    def max_size(self) -> int:
        """Maximum number of entries (0 = unlimited)."""
        return self._max_size

    def next_sequence(self) -> int:
        """Reserve the next dispatch order number for an entry."""
        with self._lock:
            return next(self._sequence)

    def add_listener(self, listener: Callable[[OutboxEntry], None]) -> None:
        """Register a callback fired after each enqueue."""
        self._listeners.append(listener)

    def is_full(self) -> bool:
        """Check if another entry would exceed max_size."""
        with self._lock:
            return self._max_size > 0 and len(self._entries) >= self._max_size

    def enqueue(self, entry: OutboxEntry) -> None:
        """Append an entry to the tail.

        Args:
            entry: The entry to add

        Raises:
            OutboxFullError: If the outbox is full
            OutboxError: If the outbox is closed
        """
        with self._lock:
            if self._closed:
                raise OutboxError("Outbox is closed")
            if self.is_full():
                raise OutboxFullError(f"Outbox full (max_size={self._max_size})")

            self._entries.append(entry)
            logger.debug("Enqueued %s (outbox size: %d)", entry, len(self._entries))

        for listener in self._listeners:
            listener(entry)

    def peek_head(self) -> OutboxEntry | None:
        """Look at the oldest unresolved entry without removing it.

        Returns:
            The head entry, or None if the outbox is empty
        """
        with self._lock:
            if not self._entries:
                return None
            return self._entries[0]

    def remove_head(self, entry: OutboxEntry) -> OutboxEntry:
        """Remove the head entry.

        Args:
            entry: The entry previously returned by peek_head()

        Returns:
            The removed entry

        Raises:
            OutboxError: If ``entry`` is not the current head
        """
        with self._lock:
            if not self._entries or self._entries[0] is not entry:
                raise OutboxError(f"{entry} is not the outbox head")
            self._entries.popleft()
            logger.debug("Removed %s (outbox size: %d)", entry, len(self._entries))
            return entry

    def is_head(self, entry: OutboxEntry) -> bool:
        """Check if ``entry`` is the current head."""
        with self._lock:
            return bool(self._entries) and self._entries[0] is entry

    def entries(self) -> list[OutboxEntry]:
        """Get a snapshot of all entries in FIFO order."""
        with self._lock:
            return list(self._entries)

    def close(self) -> None:
        """Refuse further entries."""
        with self._lock:
            self._closed = True
            logger.debug("Outbox closed")

    def __len__(self) -> int:
        """Get number of pending entries."""
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[OutboxEntry]:
        """Iterate over entries in FIFO order (does not remove them)."""
        return iter(self.entries())

    def __bool__(self) -> bool:
        """Check if outbox has entries."""
        with self._lock:
            return bool(self._entries)

    @property
    def is_closed(self) -> bool:
        """Check if outbox is closed."""
        return self._closed

    def stats(self) -> dict[str, int]:
        """Get outbox statistics.

        Returns:
            Dictionary with entry counts by action kind
        """
        with self._lock:
            stats: dict[str, int] = {"total": len(self._entries)}
            for entry in self._entries:
                key = entry.action.kind.lower()
                stats[key] = stats.get(key, 0) + 1
            return stats
