"""Reconciliation of effect outcomes with the optimistic state.

This module provides:
- Reconciler: Turns an EffectOutcome into a commit/rollback dispatch and an
  outbox removal

Decision table:
    | Outcome   | Dispatch                      | Outbox            |
    |-----------|-------------------------------|-------------------|
    | SUCCEEDED | offline.commit (if present)   | remove entry      |
    | FAILED    | offline.rollback (if present) | remove entry      |
    | RETRYING  | nothing                       | entry stays head  |

The follow-up dispatch always happens before the removal, and both happen
under the store lock so readers never observe a removed entry whose
follow-up has not been applied. The optional notify callback runs after
the lock is released.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any

from offlinestore.client.store.types import (
    Action,
    EffectOutcome,
    OutcomeStatus,
    StoreStats,
)

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from offlinestore.client.store.outbox import Outbox

logger = logging.getLogger(__name__)


class Reconciler:
    """Applies effect outcomes to the store and the outbox.

    Every failure that reaches the reconciler as FAILED is permanent for its
    entry; whether a failure is worth retrying is decided earlier by the
    executor's FailurePolicy.
    """

    def __init__(
        self,
        dispatch: Callable[[Action], Any],
        outbox: Outbox,
        lock: threading.RLock | None = None,
        stats: StoreStats | None = None,
        notify: Callable[[Any, Action], None] | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            dispatch: Applies commit/rollback actions, returning the new state
            outbox: Outbox the reconciled entries are removed from
            lock: Store lock held while dispatching and removing
            stats: Counters to update
            notify: Called with (state, follow_up) once the lock is released
        """
        self._dispatch = dispatch
        self._notify = notify
        self._outbox = outbox
        self._lock = lock
        self._stats = stats or StoreStats()

    def reconcile(self, outcome: EffectOutcome) -> bool:
        """Apply an outcome.

        Args:
            outcome: The resolved effect of the outbox head

        Returns:
            True if the entry was resolved and removed, False otherwise
        """
        entry = outcome.entry

        if outcome.status == OutcomeStatus.RETRYING:
            logger.debug("Keeping %s queued for retry", entry)
            return False

        with self._lock or contextlib.nullcontext():
            if not self._outbox.is_head(entry):
                logger.warning("Ignoring outcome for %s: already reconciled", entry)
                return False

            if outcome.status == OutcomeStatus.SUCCEEDED:
                follow_up = entry.offline.commit
                if follow_up is not None:
                    follow_up = follow_up.with_meta(
                        result=outcome.result, success=True, completed=True
                    )
                    self._stats.commits_dispatched += 1
                logger.info("Committed %s", entry)
            else:
                follow_up = entry.offline.rollback
                if follow_up is not None:
                    follow_up = follow_up.with_meta(
                        error=outcome.error, success=False, completed=True
                    )
                    self._stats.rollbacks_dispatched += 1
                logger.info("Rolled back %s: %s", entry, outcome.error)

            state = self._dispatch(follow_up) if follow_up is not None else None
            self._outbox.remove_head(entry)

        if follow_up is not None and self._notify is not None:
            self._notify(state, follow_up)
        return True
