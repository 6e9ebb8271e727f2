"""Tests for the offline store."""

from __future__ import annotations

import threading

import pytest

from offlinestore.client.store.actions import add_item, increase_amount, retry_item
from offlinestore.client.store.effects import ScriptedEffect
from offlinestore.client.store.store import OfflineStore, StoreConfig
from offlinestore.client.store.types import (
    Action,
    DomainState,
    EffectError,
    EffectOutcome,
    Item,
    NetworkStatus,
    OutboxFullError,
    OutcomeStatus,
)


@pytest.fixture
def effect() -> ScriptedEffect:
    return ScriptedEffect()


@pytest.fixture
def store(effect: ScriptedEffect) -> OfflineStore:
    return OfflineStore(
        effect=effect,
        initial_state=DomainState(items={"x": Item(amount=10)}),
        config=StoreConfig(idle_poll_interval=0.01),
    )


class TestOptimisticScenarios:
    """End-to-end behavior of the items domain."""

    def test_increase_succeeds(self, store: OfflineStore) -> None:
        """A successful increase keeps the optimistic amount."""
        store.dispatch(increase_amount("x"))
        assert store.get_state().get("x") == Item(amount=20)
        assert store.get_outbox_length() == 1

        store.set_online(True)
        store.run_pending()

        assert store.get_state().get("x") == Item(amount=20)
        assert store.get_outbox_length() == 0

    def test_increase_fails(self, store: OfflineStore, effect: ScriptedEffect) -> None:
        """A failed increase is rolled back."""
        effect.push(EffectError("rejected"))
        store.dispatch(increase_amount("x"))

        store.set_online(True)
        store.run_pending()

        assert store.get_state().get("x") == Item(amount=10)
        assert store.get_outbox_length() == 0

    def test_add_item_succeeds(self, store: OfflineStore) -> None:
        """A committed add clears the pending flag."""
        store.dispatch(add_item(item_id="y", amount=5))
        assert store.get_state().get("y") == Item(amount=5, pending=True)
        assert store.get_outbox_length() == 1

        store.set_online(True)
        store.run_pending()

        assert store.get_state().get("y") == Item(amount=5)
        assert store.get_outbox_length() == 0

    def test_add_item_fails(self, store: OfflineStore, effect: ScriptedEffect) -> None:
        """A rolled back add is marked failed and no longer pending."""
        effect.push(EffectError("rejected"))
        store.dispatch(add_item(item_id="y", amount=5))

        store.set_online(True)
        store.run_pending()

        assert store.get_state().get("y") == Item(amount=5, error=True)
        assert store.get_state().to_dict()["items"]["y"] == {"amount": 5, "error": True}
        assert store.get_outbox_length() == 0

    def test_retry_failed_add(self, store: OfflineStore, effect: ScriptedEffect) -> None:
        """A failed add can be re-issued and then committed."""
        effect.push(EffectError("rejected"))
        store.dispatch(add_item(item_id="y", amount=5))
        store.set_online(True)
        store.run_pending()

        store.dispatch(retry_item(store.get_state(), "y"))
        assert store.get_state().get("y") == Item(amount=5, pending=True)
        store.run_pending()

        assert store.get_state().get("y") == Item(amount=5)

    def test_rollback_preserves_later_increase(
        self, store: OfflineStore, effect: ScriptedEffect
    ) -> None:
        """Rolling back one increase only subtracts its own step."""
        effect.push(EffectError("rejected"))
        store.dispatch(increase_amount("x"))
        store.dispatch(increase_amount("x"))
        assert store.get_state().get("x") == Item(amount=30)

        store.set_online(True)
        store.run_pending()

        assert store.get_state().get("x") == Item(amount=20)


class TestNetworkGate:
    """Tests for connectivity gating."""

    def test_offline_queues_without_effects(
        self, store: OfflineStore, effect: ScriptedEffect
    ) -> None:
        """Nothing runs until the network is online."""
        store.dispatch(increase_amount("x"))
        store.dispatch(add_item(item_id="y"))

        assert store.run_pending() == []
        assert effect.calls == []
        assert store.get_outbox_length() == 2
        assert store.get_network_status() == NetworkStatus(online=False, busy=False)

    def test_head_runs_first(self) -> None:
        """Only the head starts; the next waits for its resolution."""
        effect = ScriptedEffect(gated=True)
        store = OfflineStore(effect=effect, config=StoreConfig(idle_poll_interval=0.01))
        store.dispatch(add_item(item_id="a"))
        store.dispatch(add_item(item_id="b"))

        with store:
            assert not effect.wait_for_calls(1, timeout=0.05)

            store.set_online(True)
            assert effect.wait_for_calls(1)
            assert not effect.wait_for_calls(2, timeout=0.05)
            assert effect.calls[0].json["itemId"] == "a"
            assert store.get_network_status().busy

            effect.release()
            assert effect.wait_for_calls(2)
            assert effect.calls[1].json["itemId"] == "b"

            effect.release()
            assert store.wait_idle(timeout=5.0)

        assert store.get_outbox_length() == 0
        assert store.get_state().get("a") == Item(amount=1)
        assert store.get_state().get("b") == Item(amount=1)

    def test_start_online(self, effect: ScriptedEffect) -> None:
        """StoreConfig.start_online skips the initial offline period."""
        store = OfflineStore(effect=effect, config=StoreConfig(start_online=True))
        store.dispatch(add_item(item_id="y"))

        outcomes = store.run_pending()

        assert [o.status for o in outcomes] == [OutcomeStatus.SUCCEEDED]


class TestDispatch:
    """Tests for dispatch and the read interface."""

    def test_plain_action_is_not_queued(self, store: OfflineStore) -> None:
        """Actions without offline metadata only go through the reducer."""
        store.dispatch(Action(kind="SOMETHING_LOCAL"))
        assert store.get_outbox_length() == 0
        assert store.get_stats().actions_dispatched == 1
        assert store.get_stats().entries_enqueued == 0

    def test_pending_actions_in_order(self, store: OfflineStore) -> None:
        """The outbox is exposed in dispatch order."""
        first, second = increase_amount("x"), add_item(item_id="y")
        store.dispatch(first)
        store.dispatch(second)

        assert store.get_pending_actions() == [first, second]

    def test_outbox_full(self, effect: ScriptedEffect) -> None:
        """A full outbox rejects the action before it is applied."""
        store = OfflineStore(
            effect=effect,
            initial_state=DomainState(items={"x": Item(amount=10)}),
            config=StoreConfig(max_outbox_size=1),
        )
        store.dispatch(increase_amount("x"))

        with pytest.raises(OutboxFullError):
            store.dispatch(increase_amount("x"))

        assert store.get_state().get("x") == Item(amount=20)
        assert store.get_outbox_length() == 1

    def test_listeners(self, store: OfflineStore) -> None:
        """Listeners see every dispatched action, follow-ups included."""
        seen: list[tuple[DomainState, Action]] = []
        unsubscribe = store.subscribe(lambda state, action: seen.append((state, action)))

        store.dispatch(add_item(item_id="y", amount=2))
        store.set_online(True)
        store.run_pending()
        unsubscribe()
        store.dispatch(increase_amount("x"))

        assert [action.kind for _, action in seen] == ["ADD_ITEM", "ADD_ITEM_COMMIT"]
        assert seen[0][0].get("y") == Item(amount=2, pending=True)
        assert seen[1][0].get("y") == Item(amount=2)

    def test_failing_listener_is_isolated(self, store: OfflineStore) -> None:
        """A raising listener does not break dispatch."""

        def broken(state: DomainState, action: Action) -> None:
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.dispatch(increase_amount("x"))

        assert store.get_state().get("x") == Item(amount=20)
        assert store.get_stats().errors == 1

    def test_outbox_length_matches_unresolved_actions(
        self, store: OfflineStore, effect: ScriptedEffect
    ) -> None:
        """Outbox length always equals dispatched minus reconciled."""
        effect.push(EffectError("rejected"))
        lengths: list[int] = []
        store.subscribe(lambda state, action: lengths.append(store.get_outbox_length()))

        for _ in range(3):
            store.dispatch(increase_amount("x"))
        store.set_online(True)
        store.run_pending()

        # The rollback is announced once its entry has left the outbox
        assert lengths == [1, 2, 3, 2]
        assert store.get_outbox_length() == 0

    def test_reconciliation_is_idempotent(self, store: OfflineStore) -> None:
        """Replaying an outcome does not apply the follow-up twice."""
        store.dispatch(add_item(item_id="y"))
        store.set_online(True)
        (outcome,) = store.run_pending()

        replay = EffectOutcome(entry=outcome.entry, status=OutcomeStatus.FAILED)
        assert not store.reconciler.reconcile(replay)
        assert store.get_state().get("y") == Item(amount=1)
        assert store.get_stats().commits_dispatched == 1
        assert store.get_stats().rollbacks_dispatched == 0

    def test_follow_up_listener_can_wait_on_readers(self, store: OfflineStore) -> None:
        """Commit listeners run without the store lock held."""
        reader_finished: list[bool] = []

        def listener(state: DomainState, action: Action) -> None:
            if action.kind != "ADD_ITEM_COMMIT":
                return
            reader = threading.Thread(target=store.get_state)
            reader.start()
            reader.join(timeout=1.0)
            reader_finished.append(not reader.is_alive())

        store.subscribe(listener)
        store.dispatch(add_item(item_id="y"))
        store.set_online(True)
        store.run_pending()

        assert reader_finished == [True]

    def test_sequences_are_per_store(self, effect: ScriptedEffect) -> None:
        """Two stores number their entries independently."""
        first, second = OfflineStore(effect=effect), OfflineStore(effect=effect)
        first.dispatch(add_item(item_id="a"))
        second.dispatch(add_item(item_id="b"))
        first.dispatch(add_item(item_id="c"))

        assert [e.sequence for e in first._outbox.entries()] == [1, 2]
        assert [e.sequence for e in second._outbox.entries()] == [1]


class TestBackgroundStore:
    """Tests for the store with its executor thread running."""

    def test_concurrent_dispatch(self, effect: ScriptedEffect) -> None:
        """Dispatches from many threads all reconcile."""
        store = OfflineStore(
            effect=effect,
            initial_state=DomainState(items={"x": Item(amount=0)}),
            config=StoreConfig(start_online=True, idle_poll_interval=0.01),
        )

        def produce() -> None:
            for _ in range(10):
                store.dispatch(increase_amount("x"))

        with store:
            threads = [threading.Thread(target=produce) for _ in range(4)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()
            assert store.wait_idle(timeout=10.0)

        assert store.get_state().get("x") == Item(amount=400)
        assert store.get_outbox_length() == 0
        assert len(effect.calls) == 40

    def test_stop_keeps_queue(self, effect: ScriptedEffect) -> None:
        """Stopping the executor leaves unsent actions queued."""
        store = OfflineStore(effect=effect)
        with store:
            store.dispatch(add_item(item_id="y"))

        assert store.get_outbox_length() == 1
        assert effect.calls == []
