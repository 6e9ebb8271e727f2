"""Shared types and dataclasses for the offline action queue.

This module provides:
- OfflineStoreError, OutboxError, OutboxFullError, EffectError,
  EffectTimeoutError: Exception classes
- ActionKind: Action vocabulary of the items domain
- EffectRequest, OfflineDescriptor, Action: Dispatchable records
- OutboxEntry: A queued action awaiting remote realization
- Item, DomainState: Optimistic domain state
- NetworkStatus: Connectivity snapshot for the presentation layer
- ExecutorState, LifecycleState, OutcomeStatus, EffectOutcome: Executor types
- StoreStats: Counters for the store
- Type aliases for callbacks
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from types import MappingProxyType
from typing import Any


class OfflineStoreError(Exception):
    """Base exception for offline store errors."""


class OutboxError(OfflineStoreError):
    """Outbox operation violated FIFO ordering."""


class OutboxFullError(OutboxError):
    """Outbox reached its configured maximum size."""


class EffectError(OfflineStoreError):
    """A network effect failed."""


class EffectTimeoutError(EffectError, TimeoutError):
    """A network effect did not resolve within the configured timeout."""


def _frozen(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


# =============================================================================
# Actions
# =============================================================================


class ActionKind(str, Enum):
    """Action vocabulary understood by the items reducer."""

    INCREASE_AMOUNT = "INCREASE_AMOUNT"
    INCREASE_AMOUNT_ROLLBACK = "INCREASE_AMOUNT_ROLLBACK"
    ADD_ITEM = "ADD_ITEM"
    ADD_ITEM_COMMIT = "ADD_ITEM_COMMIT"
    ADD_ITEM_ROLLBACK = "ADD_ITEM_ROLLBACK"


@dataclass(frozen=True)
class EffectRequest:
    """Description of the remote call realizing a queued action.

    Attributes:
        url: Target of the call (e.g. "/api/add-item")
        method: HTTP-style method name
        json: Body sent with the call
    """

    url: str
    method: str = "POST"
    json: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "json", _frozen(self.json))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return {"url": self.url, "method": self.method, "json": dict(self.json)}


@dataclass(frozen=True)
class OfflineDescriptor:
    """How an action is realized remotely.

    Attributes:
        effect: The remote call to attempt
        commit: Action dispatched when the effect succeeds
        rollback: Action dispatched when the effect fails permanently
    """

    effect: EffectRequest
    commit: Action | None = None
    rollback: Action | None = None


@dataclass(frozen=True)
class Action:
    """An immutable record describing an intended state change.

    Actions are compared structurally. ``meta`` is filled in by the
    reconciler on commit/rollback actions with the effect outcome.

    Attributes:
        kind: Action type (an ActionKind value or any other string)
        payload: Data the reducer needs to apply the action
        offline: Optional offline metadata; its presence queues the action
        meta: Reconciliation details (result/error, success, completed)
    """

    kind: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    offline: OfflineDescriptor | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.kind, ActionKind):
            object.__setattr__(self, "kind", self.kind.value)
        object.__setattr__(self, "payload", _frozen(self.payload))
        object.__setattr__(self, "meta", _frozen(self.meta))

    @property
    def is_offline(self) -> bool:
        """Check if this action must be realized remotely."""
        return self.offline is not None

    def with_meta(self, **meta: Any) -> Action:
        """Return a copy of this action with extra meta entries."""
        return Action(
            kind=self.kind,
            payload=self.payload,
            offline=self.offline,
            meta={**self.meta, **meta},
        )

    def __repr__(self) -> str:
        """Human-readable representation."""
        offline = ", offline" if self.offline else ""
        return f"Action({self.kind}, payload={dict(self.payload)!r}{offline})"


# =============================================================================
# Outbox Types
# =============================================================================


@dataclass
class OutboxEntry:
    """An action waiting in the outbox for its effect to be reconciled.

    Attributes:
        action: The dispatched action (always carries offline metadata)
        sequence: Monotonic dispatch order number
        entry_id: Unique identifier for this entry
        enqueued_at: Unix timestamp when the entry was created
        attempts: Number of times the effect has been invoked
    """

    action: Action
    sequence: int
    entry_id: str
    enqueued_at: float = field(default_factory=time.time)
    attempts: int = 0

    @classmethod
    def create(cls, action: Action, sequence: int) -> OutboxEntry:
        """Create an entry with an id derived from its sequence.

        Args:
            action: The dispatched action
            sequence: Dispatch order number (see Outbox.next_sequence)

        Raises:
            ValueError: If the action has no offline metadata
        """
        if action.offline is None:
            raise ValueError(f"Action {action.kind} has no offline metadata")
        return cls(
            action=action,
            sequence=sequence,
            entry_id=f"{sequence:08d}_{action.kind}",
        )

    @property
    def offline(self) -> OfflineDescriptor:
        """Offline metadata of the queued action."""
        if self.action.offline is None:
            raise OutboxError(f"{self.action.kind} has no offline metadata")
        return self.action.offline

    @property
    def effect(self) -> EffectRequest:
        """Effect request of the queued action."""
        return self.offline.effect

    def __repr__(self) -> str:
        """Human-readable representation."""
        return f"OutboxEntry(#{self.sequence}, {self.action.kind}, attempts={self.attempts})"


# =============================================================================
# Domain State
# =============================================================================


@dataclass(frozen=True)
class Item:
    """A domain entity.

    Attributes:
        amount: Current optimistic amount
        pending: An add-item intent is in flight without server confirmation
        error: The last attempt for this item failed permanently
    """

    amount: int
    pending: bool = False
    error: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary, omitting unset flags."""
        data: dict[str, Any] = {"amount": self.amount}
        if self.pending:
            data["pending"] = True
        if self.error:
            data["error"] = True
        return data


@dataclass(frozen=True)
class DomainState:
    """Optimistic view of domain entities.

    Snapshots are never mutated; reducers return new instances so that
    earlier snapshots stay valid for inspection.
    """

    items: Mapping[str, Item] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", _frozen(self.items))

    def get(self, item_id: str) -> Item | None:
        """Get an item by id."""
        return self.items.get(item_id)

    def with_item(self, item_id: str, item: Item) -> DomainState:
        """Return a new state with ``item_id`` set to ``item``."""
        return DomainState(items={**self.items, item_id: item})

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return {"items": {key: item.to_dict() for key, item in self.items.items()}}


@dataclass(frozen=True)
class NetworkStatus:
    """Connectivity snapshot.

    Attributes:
        online: Externally controlled connectivity flag
        busy: True exactly while an effect is in flight
    """

    online: bool = False
    busy: bool = False


# =============================================================================
# Executor Types
# =============================================================================


class ExecutorState(IntEnum):
    """State of the effect executor state machine."""

    IDLE = auto()
    EXECUTING = auto()


class LifecycleState(IntEnum):
    """State of the executor background thread."""

    STOPPED = auto()
    RUNNING = auto()
    STOPPING = auto()


class OutcomeStatus(IntEnum):
    """Resolution of a single effect invocation."""

    SUCCEEDED = auto()
    FAILED = auto()  # Permanent, entry is rolled back
    RETRYING = auto()  # Transient, entry stays queued


@dataclass
class EffectOutcome:
    """Result of invoking the effect of an outbox entry.

    Attributes:
        entry: The entry whose effect was invoked
        status: How the invocation resolved
        result: Value returned by the effect on success
        error: Exception raised by the effect on failure
        elapsed_time: Time taken in seconds
        retry_delay: Backoff before the next attempt (RETRYING only)
    """

    entry: OutboxEntry
    status: OutcomeStatus
    result: Any = None
    error: BaseException | None = None
    elapsed_time: float = 0.0
    retry_delay: float = 0.0

    @property
    def success(self) -> bool:
        """Check if the effect succeeded."""
        return self.status == OutcomeStatus.SUCCEEDED

    @property
    def is_final(self) -> bool:
        """Check if the entry must leave the outbox."""
        return self.status != OutcomeStatus.RETRYING


@dataclass
class StoreStats:
    """Statistics for the store and its executor."""

    actions_dispatched: int = 0
    entries_enqueued: int = 0
    effects_started: int = 0
    effects_succeeded: int = 0
    effects_failed: int = 0
    effects_retried: int = 0
    commits_dispatched: int = 0
    rollbacks_dispatched: int = 0
    errors: int = 0


# Effect capability: raises to signal failure
EffectCallable = Callable[[EffectRequest], Any]

# Reducer signature
Reducer = Callable[[DomainState, Action], DomainState]

# State-change listener: (new_state, action)
StateListener = Callable[[DomainState, Action], None]
