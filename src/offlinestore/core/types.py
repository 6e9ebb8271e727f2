"""Shared types for offlinestore.

This module defines the summary state shown to users of the store.
"""

from __future__ import annotations

from enum import Enum


class QueueState(str, Enum):
    """Overall state of the offline queue.

    Derived from the network status and the outbox length for display.
    """

    IDLE = "idle"
    SYNCING = "syncing"
    WAITING = "waiting"
    OFFLINE = "offline"

    @classmethod
    def from_status(cls, online: bool, busy: bool, pending: int) -> QueueState:
        """Summarize connectivity and outbox length.

        Args:
            online: Network flag.
            busy: Whether an effect is in flight.
            pending: Number of queued actions.

        Returns:
            The matching state.
        """
        if busy:
            return cls.SYNCING
        if not online:
            return cls.OFFLINE
        if pending:
            return cls.WAITING
        return cls.IDLE
