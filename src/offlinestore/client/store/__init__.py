"""Optimistic offline action queue.

Architecture:
    dispatch → reducer → Outbox → EffectExecutor → Reconciler → dispatch

Components:
- **OfflineStore**: Owns the optimistic DomainState; single dispatch entry point
- **Outbox**: FIFO of actions awaiting remote realization
- **NetworkMonitor**: Externally toggled connectivity gate
- **EffectExecutor**: Runs one effect at a time, head to tail, while online
- **Reconciler**: Dispatches commit/rollback and removes resolved entries
- **FailurePolicy**: Transient/permanent classification, backoff and timeout

All public symbols are re-exported here.
"""

from offlinestore.client.store.actions import (
    INCREASE_STEP,
    add_item,
    increase_amount,
    initial_state,
    make_id,
    retry_item,
)
from offlinestore.client.store.effects import ScriptedEffect, SimulatedEffect
from offlinestore.client.store.executor import EffectExecutor, EffectProtocol
from offlinestore.client.store.network import (
    NETWORK_CHECK_INTERVAL,
    NetworkMonitor,
    watch_connectivity,
)
from offlinestore.client.store.outbox import Outbox
from offlinestore.client.store.reconciler import Reconciler
from offlinestore.client.store.reducer import items_reducer
from offlinestore.client.store.retry import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_BACKOFF,
    DEFAULT_MAX_RETRIES,
    NETWORK_EXCEPTIONS,
    FailurePolicy,
)
from offlinestore.client.store.store import OfflineStore, StoreConfig
from offlinestore.client.store.types import (
    Action,
    ActionKind,
    DomainState,
    EffectError,
    EffectOutcome,
    EffectRequest,
    EffectTimeoutError,
    ExecutorState,
    Item,
    LifecycleState,
    NetworkStatus,
    OfflineDescriptor,
    OfflineStoreError,
    OutboxEntry,
    OutboxError,
    OutboxFullError,
    OutcomeStatus,
    StoreStats,
)

__all__ = [
    # Retry policy and constants
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_INITIAL_BACKOFF",
    "DEFAULT_MAX_BACKOFF",
    "DEFAULT_MAX_RETRIES",
    "NETWORK_EXCEPTIONS",
    "FailurePolicy",
    # Types and dataclasses
    "Action",
    "ActionKind",
    "DomainState",
    "EffectOutcome",
    "EffectRequest",
    "ExecutorState",
    "Item",
    "LifecycleState",
    "NetworkStatus",
    "OfflineDescriptor",
    "OutboxEntry",
    "OutcomeStatus",
    "StoreStats",
    # Errors
    "EffectError",
    "EffectTimeoutError",
    "OfflineStoreError",
    "OutboxError",
    "OutboxFullError",
    # Action creators and reducer
    "INCREASE_STEP",
    "add_item",
    "increase_amount",
    "initial_state",
    "items_reducer",
    "make_id",
    "retry_item",
    # Queue machinery
    "EffectExecutor",
    "EffectProtocol",
    "Outbox",
    "Reconciler",
    # Network
    "NETWORK_CHECK_INTERVAL",
    "NetworkMonitor",
    "watch_connectivity",
    # Store
    "OfflineStore",
    "ScriptedEffect",
    "SimulatedEffect",
    "StoreConfig",
]
