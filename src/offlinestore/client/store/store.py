"""Optimistic store with an offline outbox.

This module provides:
- StoreConfig: Store configuration
- OfflineStore: Owns the domain state, the outbox and the executor

Architecture:
    Collaborator ──dispatch──► OfflineStore ──reducer──► DomainState
                                   │
                                   └─offline actions─► Outbox ──► EffectExecutor
                                                                      │
    OfflineStore ◄──commit/rollback── Reconciler ◄────outcome─────────┘

All mutation goes through ``dispatch``. The store lock serializes reducer
application, enqueueing and reconciliation, so the outbox order is the
dispatch order and a follow-up action is always applied before its entry
leaves the outbox. Listeners are notified only after the lock is released.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from offlinestore.client.store.executor import EffectExecutor
from offlinestore.client.store.network import NetworkMonitor
from offlinestore.client.store.outbox import Outbox
from offlinestore.client.store.reconciler import Reconciler
from offlinestore.client.store.reducer import items_reducer
from offlinestore.client.store.retry import FailurePolicy
from offlinestore.client.store.types import (
    Action,
    DomainState,
    EffectOutcome,
    NetworkStatus,
    OutboxEntry,
    OutboxFullError,
    StoreStats,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from offlinestore.client.store.executor import EffectProtocol
    from offlinestore.client.store.types import EffectCallable, Reducer, StateListener

logger = logging.getLogger(__name__)


@dataclass
class StoreConfig:
    """Configuration for OfflineStore.

    Attributes:
        start_online: Initial connectivity (offline until a detector reports)
        max_outbox_size: Maximum queued actions (0 = unlimited)
        idle_poll_interval: Max seconds the executor sleeps between checks
        failure_policy: Retry and timeout policy for effects
    """

    start_online: bool = False
    max_outbox_size: int = 0
    idle_poll_interval: float = 0.1
    failure_policy: FailurePolicy = field(default_factory=FailurePolicy)


class OfflineStore:
    """Optimistic state container with a reconciled outbox.

    Usage:
        store = OfflineStore(effect=SimulatedEffect(seed=1), initial_state=initial_state())

        with store:  # starts the executor thread
            store.dispatch(add_item(amount=5))
            store.set_online(True)
            store.wait_idle(timeout=5)

        print(store.get_state(), store.get_outbox_length())
    """

    def __init__(
        self,
        effect: EffectProtocol | EffectCallable,
        reducer: Reducer = items_reducer,
        initial_state: DomainState | None = None,
        config: StoreConfig | None = None,
        network: NetworkMonitor | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            effect: Effect capability realizing queued actions
            reducer: Pure reducer applied to every dispatched action
            initial_state: Starting state (empty when omitted)
            config: Store configuration
            network: Connectivity monitor (created from config when omitted)
        """
        self._config = config or StoreConfig()
        self._reducer = reducer
        self._state = initial_state if initial_state is not None else DomainState()
        self._lock = threading.RLock()
        self._stats = StoreStats()
        self._listeners: list[StateListener] = []

        self._outbox = Outbox(max_size=self._config.max_outbox_size)
        self._network = network or NetworkMonitor(online=self._config.start_online)
        self._reconciler = Reconciler(
            dispatch=self._apply,
            outbox=self._outbox,
            lock=self._lock,
            stats=self._stats,
            notify=self._notify,
        )
        self._executor = EffectExecutor(
            outbox=self._outbox,
            network=self._network,
            reconciler=self._reconciler,
            effect=effect,
            policy=self._config.failure_policy,
            stats=self._stats,
            idle_poll_interval=self._config.idle_poll_interval,
        )

    @property
    def config(self) -> StoreConfig:
        """Get store configuration."""
        return self._config

    @property
    def network(self) -> NetworkMonitor:
        """Get the connectivity monitor."""
        return self._network

    @property
    def executor(self) -> EffectExecutor:
        """Get the effect executor."""
        return self._executor

    @property
    def reconciler(self) -> Reconciler:
        """Get the reconciler."""
        return self._reconciler

    # === Dispatch ===

    def dispatch(self, action: Action) -> None:
        """Apply an action optimistically and queue its effect.

        Args:
            action: The action to apply

        Raises:
            OutboxFullError: If the action is offline and the outbox is full;
                the state is left untouched
        """
        state = self._apply(action)
        self._notify(state, action)

    def _apply(self, action: Action) -> DomainState:
        """Reduce and enqueue an action without notifying listeners.

        Returns:
            The new state
        """
        with self._lock:
            if action.offline is not None and self._outbox.is_full():
                raise OutboxFullError(
                    f"Cannot queue {action.kind}: outbox full "
                    f"(max_size={self._outbox.max_size})"
                )

            logger.debug("[action] %r", action)
            self._state = self._reducer(self._state, action)
            self._stats.actions_dispatched += 1

            if action.offline is not None:
                entry = OutboxEntry.create(action, self._outbox.next_sequence())
                self._outbox.enqueue(entry)
                self._stats.entries_enqueued += 1

            return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called after every dispatch.

        Listeners run on the dispatching thread, or on the executor thread
        for commit and rollback actions, always after the store lock has been
        released. A listener that blocks still delays the next effect.

        Args:
            listener: Function(new_state, action)

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

    def _notify(self, state: DomainState, action: Action) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state, action)
            except Exception:
                logger.exception("State listener failed for %r", action)
                self._stats.errors += 1

    # === Network signal ===

    def set_online(self, online: bool) -> bool:
        """Report connectivity (the collaborator's network signal).

        Returns:
            True if connectivity changed
        """
        return self._network.set_online(online)

    # === Read interface ===

    def get_state(self) -> DomainState:
        """Get the current optimistic state snapshot."""
        with self._lock:
            return self._state

    def get_outbox_length(self) -> int:
        """Get the number of actions awaiting reconciliation."""
        return len(self._outbox)

    def get_network_status(self) -> NetworkStatus:
        """Get connectivity and busy flags."""
        return self._network.status()

    def get_pending_actions(self) -> list[Action]:
        """Get queued actions in outbox order."""
        return [entry.action for entry in self._outbox.entries()]

    def get_stats(self) -> StoreStats:
        """Get store statistics."""
        return self._stats

    # === Executor control ===

    def run_pending(self) -> list[EffectOutcome]:
        """Drain the outbox synchronously on the calling thread.

        Returns:
            Outcomes in execution order
        """
        return self._executor.drain()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no effect is in flight and none can start."""
        return self._executor.wait_idle(timeout=timeout)

    def start(self) -> None:
        """Start the background executor."""
        self._executor.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the background executor."""
        self._executor.stop(timeout=timeout)

    def __enter__(self) -> OfflineStore:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()
