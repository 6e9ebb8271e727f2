"""Tests for core types."""

from __future__ import annotations

import pytest

from offlinestore.core.types import QueueState


class TestQueueState:
    """Tests for QueueState.from_status."""

    @pytest.mark.parametrize(
        ("online", "busy", "pending", "expected"),
        [
            (True, False, 0, QueueState.IDLE),
            (True, False, 2, QueueState.WAITING),
            (False, False, 0, QueueState.OFFLINE),
            (False, False, 3, QueueState.OFFLINE),
            (True, True, 1, QueueState.SYNCING),
            (False, True, 1, QueueState.SYNCING),
        ],
    )
    def test_from_status(
        self, online: bool, busy: bool, pending: int, expected: QueueState
    ) -> None:
        """An in-flight effect wins over connectivity and backlog."""
        assert QueueState.from_status(online, busy, pending) == expected

    def test_string_value(self) -> None:
        """States compare equal to their string value."""
        assert QueueState.OFFLINE == "offline"
