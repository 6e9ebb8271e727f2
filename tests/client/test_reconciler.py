"""Tests for the reconciler."""

from __future__ import annotations

import threading

import pytest

from offlinestore.client.store.actions import add_item, increase_amount
from offlinestore.client.store.outbox import Outbox
from offlinestore.client.store.reconciler import Reconciler
from offlinestore.client.store.types import (
    Action,
    ActionKind,
    EffectError,
    EffectOutcome,
    OutboxEntry,
    OutcomeStatus,
    StoreStats,
)


class Recorder:
    """Dispatch target recording actions together with the outbox length."""

    def __init__(self, outbox: Outbox) -> None:
        self.outbox = outbox
        self.actions: list[Action] = []
        self.outbox_lengths: list[int] = []

    def dispatch(self, action: Action) -> None:
        self.actions.append(action)
        self.outbox_lengths.append(len(self.outbox))


@pytest.fixture
def outbox() -> Outbox:
    return Outbox()


@pytest.fixture
def recorder(outbox: Outbox) -> Recorder:
    return Recorder(outbox)


@pytest.fixture
def stats() -> StoreStats:
    return StoreStats()


@pytest.fixture
def reconciler(outbox: Outbox, recorder: Recorder, stats: StoreStats) -> Reconciler:
    return Reconciler(recorder.dispatch, outbox, lock=threading.RLock(), stats=stats)


def queued(outbox: Outbox, action: Action) -> OutboxEntry:
    entry = OutboxEntry.create(action, outbox.next_sequence())
    outbox.enqueue(entry)
    return entry


class TestReconciler:
    """Tests for Reconciler."""

    def test_success_dispatches_commit_then_removes(
        self, reconciler: Reconciler, outbox: Outbox, recorder: Recorder, stats: StoreStats
    ) -> None:
        """Commit is dispatched while the entry is still queued, then removed."""
        entry = queued(outbox, add_item(item_id="y", amount=5))

        resolved = reconciler.reconcile(
            EffectOutcome(entry=entry, status=OutcomeStatus.SUCCEEDED, result={"ok": True})
        )

        assert resolved
        assert [a.kind for a in recorder.actions] == [ActionKind.ADD_ITEM_COMMIT]
        assert recorder.outbox_lengths == [1]
        assert len(outbox) == 0
        assert stats.commits_dispatched == 1

    def test_commit_carries_result(
        self, reconciler: Reconciler, outbox: Outbox, recorder: Recorder
    ) -> None:
        """The commit action carries the effect result in meta."""
        entry = queued(outbox, add_item(item_id="y"))
        reconciler.reconcile(
            EffectOutcome(entry=entry, status=OutcomeStatus.SUCCEEDED, result={"id": 7})
        )

        commit = recorder.actions[0]
        assert commit.meta["result"] == {"id": 7}
        assert commit.meta["success"] is True
        assert commit.payload == {"item_id": "y"}

    def test_success_without_commit_only_removes(
        self, reconciler: Reconciler, outbox: Outbox, recorder: Recorder
    ) -> None:
        """Increase has no commit: success dispatches nothing."""
        entry = queued(outbox, increase_amount("x"))

        assert reconciler.reconcile(EffectOutcome(entry=entry, status=OutcomeStatus.SUCCEEDED))
        assert recorder.actions == []
        assert len(outbox) == 0

    def test_failure_dispatches_rollback_then_removes(
        self, reconciler: Reconciler, outbox: Outbox, recorder: Recorder, stats: StoreStats
    ) -> None:
        """Rollback is dispatched with the error, then the entry is removed."""
        entry = queued(outbox, increase_amount("x"))
        error = EffectError("rejected")

        reconciler.reconcile(EffectOutcome(entry=entry, status=OutcomeStatus.FAILED, error=error))

        assert [a.kind for a in recorder.actions] == [ActionKind.INCREASE_AMOUNT_ROLLBACK]
        assert recorder.actions[0].meta["error"] is error
        assert recorder.actions[0].meta["success"] is False
        assert recorder.outbox_lengths == [1]
        assert len(outbox) == 0
        assert stats.rollbacks_dispatched == 1

    def test_retrying_keeps_entry(
        self, reconciler: Reconciler, outbox: Outbox, recorder: Recorder
    ) -> None:
        """A retrying outcome dispatches nothing and keeps the entry."""
        entry = queued(outbox, increase_amount("x"))

        resolved = reconciler.reconcile(
            EffectOutcome(entry=entry, status=OutcomeStatus.RETRYING, error=ConnectionError())
        )

        assert not resolved
        assert recorder.actions == []
        assert outbox.peek_head() is entry

    def test_idempotent(
        self, reconciler: Reconciler, outbox: Outbox, recorder: Recorder
    ) -> None:
        """A removed entry is never reconciled again."""
        entry = queued(outbox, add_item(item_id="y"))
        outcome = EffectOutcome(entry=entry, status=OutcomeStatus.SUCCEEDED)

        assert reconciler.reconcile(outcome)
        assert not reconciler.reconcile(outcome)
        assert not reconciler.reconcile(
            EffectOutcome(entry=entry, status=OutcomeStatus.FAILED, error=EffectError("late"))
        )
        assert len(recorder.actions) == 1

    def test_only_head_is_reconciled(
        self, reconciler: Reconciler, outbox: Outbox, recorder: Recorder
    ) -> None:
        """Outcomes for entries behind the head are ignored."""
        queued(outbox, increase_amount("a"))
        second = queued(outbox, add_item(item_id="b"))

        assert not reconciler.reconcile(
            EffectOutcome(entry=second, status=OutcomeStatus.SUCCEEDED)
        )
        assert recorder.actions == []
        assert len(outbox) == 2

    def test_notify_runs_after_lock_release(
        self, outbox: Outbox, recorder: Recorder
    ) -> None:
        """Listeners are notified once the entry is removed and the lock is free."""
        lock = threading.Lock()
        notified: list[tuple[str, bool, int]] = []

        def notify(state: object, action: Action) -> None:
            free = lock.acquire(blocking=False)
            if free:
                lock.release()
            notified.append((action.kind, free, len(outbox)))

        reconciler = Reconciler(
            recorder.dispatch, outbox, lock=lock, notify=notify  # type: ignore[arg-type]
        )
        entry = queued(outbox, add_item(item_id="y"))

        assert reconciler.reconcile(EffectOutcome(entry=entry, status=OutcomeStatus.SUCCEEDED))
        assert notified == [("ADD_ITEM_COMMIT", True, 0)]

    def test_no_notify_without_follow_up(self, outbox: Outbox, recorder: Recorder) -> None:
        """Entries without a follow-up action notify nobody."""
        notified: list[Action] = []
        reconciler = Reconciler(
            recorder.dispatch, outbox, notify=lambda state, action: notified.append(action)
        )
        entry = queued(outbox, increase_amount("x"))

        assert reconciler.reconcile(EffectOutcome(entry=entry, status=OutcomeStatus.SUCCEEDED))
        assert notified == []
