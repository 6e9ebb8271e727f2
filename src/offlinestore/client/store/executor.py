"""Sequential effect executor.

This module provides:
- EffectProtocol: Interface of the network effect capability
- EffectExecutor: Drains the outbox head-to-tail while online

The executor is a two-state machine over at most one in-flight effect:

    | State     | Trigger                          | Next                     |
    |-----------|----------------------------------|--------------------------|
    | IDLE      | online and outbox non-empty      | EXECUTING(head)          |
    | EXECUTING | effect returns                   | IDLE, reconcile success  |
    | EXECUTING | effect raises                    | IDLE, reconcile failure  |

Going offline while EXECUTING does not cancel the in-flight effect; it
only prevents the next entry from starting. Because a single effect runs at
a time, remote calls are issued in outbox order. With a policy timeout a stalled
call is abandoned on its own worker thread: its entry is reconciled as
failed while the call itself may still complete remotely.

The executor can be driven synchronously with ``run_once()`` or run in a
background thread with ``start()``. The thread sleeps on a work-available
condition that is signalled by every enqueue and by every transition of
the network monitor to online.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import TYPE_CHECKING, Any, Protocol

from offlinestore.client.store.retry import FailurePolicy
from offlinestore.client.store.types import (
    EffectOutcome,
    EffectRequest,
    EffectTimeoutError,
    ExecutorState,
    LifecycleState,
    OutboxEntry,
    OutcomeStatus,
    StoreStats,
)

if TYPE_CHECKING:
    from offlinestore.client.store.network import NetworkMonitor
    from offlinestore.client.store.outbox import Outbox
    from offlinestore.client.store.reconciler import Reconciler
    from offlinestore.client.store.types import EffectCallable

logger = logging.getLogger(__name__)


class EffectProtocol(Protocol):
    """Protocol for network effect capabilities.

    Effects may block for an arbitrary time. They signal failure by raising.
    """

    def perform_effect(self, request: EffectRequest) -> Any:
        """Perform the remote call.

        Args:
            request: The effect to realize

        Returns:
            The result value (attached to the commit action)
        """
        ...


class EffectExecutor:
    """Runs the effect of the outbox head, one entry at a time.

    Usage:
        executor = EffectExecutor(outbox, network, reconciler, effect)

        # Deterministic driving
        outcome = executor.run_once()

        # Or in the background
        executor.start()
        ...
        executor.stop()
    """

    def __init__(
        self,
        outbox: Outbox,
        network: NetworkMonitor,
        reconciler: Reconciler,
        effect: EffectProtocol | EffectCallable,
        policy: FailurePolicy | None = None,
        stats: StoreStats | None = None,
        idle_poll_interval: float = 0.1,
    ) -> None:
        """Initialize the executor.

        Args:
            outbox: Outbox to drain
            network: Connectivity gate
            reconciler: Receives every outcome
            effect: Effect capability (object with perform_effect, or a callable)
            policy: Failure classification and timeout (default: all permanent)
            stats: Counters to update
            idle_poll_interval: Max seconds the thread sleeps between checks
        """
        self._outbox = outbox
        self._network = network
        self._reconciler = reconciler
        self._effect = effect
        self._policy = policy or FailurePolicy()
        self._stats = stats or StoreStats()
        self._idle_poll_interval = idle_poll_interval

        # State machine
        self._state = ExecutorState.IDLE
        self._current: OutboxEntry | None = None
        self._step_lock = threading.Lock()
        self._work_available = threading.Condition()

        # Background thread
        self._lifecycle = LifecycleState.STOPPED
        self._lifecycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        outbox.add_listener(lambda _entry: self.notify())
        network.subscribe(self._on_network_change)

    @property
    def state(self) -> ExecutorState:
        """Get current state machine state."""
        return self._state

    @property
    def lifecycle(self) -> LifecycleState:
        """Get background thread state."""
        return self._lifecycle

    @property
    def current(self) -> OutboxEntry | None:
        """Get the entry whose effect is in flight."""
        return self._current

    @property
    def policy(self) -> FailurePolicy:
        """Get the failure policy."""
        return self._policy

    def notify(self) -> None:
        """Signal that work may be available."""
        with self._work_available:
            self._work_available.notify_all()

    def _on_network_change(self, online: bool) -> None:
        if online:
            self.notify()

    def has_work(self) -> bool:
        """Check if an effect could start now."""
        return self._network.is_online() and bool(self._outbox)

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    def run_once(self) -> EffectOutcome | None:
        """Execute and reconcile the outbox head if the gate allows it.

        Returns:
            The outcome, or None if offline, empty, or already executing
        """
        if not self._step_lock.acquire(blocking=False):
            return None

        try:
            if not self._network.is_online():
                return None
            entry = self._outbox.peek_head()
            if entry is None:
                return None

            self._begin(entry)
            try:
                outcome = self._perform(entry)
                self._reconciler.reconcile(outcome)
            finally:
                self._end()

            if outcome.status == OutcomeStatus.RETRYING and outcome.retry_delay > 0:
                self._stop_event.wait(outcome.retry_delay)
            return outcome
        finally:
            self._step_lock.release()

    def drain(self) -> list[EffectOutcome]:
        """Run effects synchronously until nothing is runnable.

        Returns:
            Outcomes in execution order
        """
        outcomes: list[EffectOutcome] = []
        while self.has_work():
            outcome = self.run_once()
            if outcome is None:
                break
            outcomes.append(outcome)
        return outcomes

    def _begin(self, entry: OutboxEntry) -> None:
        with self._work_available:
            self._state = ExecutorState.EXECUTING
            self._current = entry
            self._network.set_busy(True)
        logger.info("Executing %s %s for %s", entry.effect.method, entry.effect.url, entry)

    def _end(self) -> None:
        with self._work_available:
            self._state = ExecutorState.IDLE
            self._current = None
            self._network.set_busy(False)
            self._work_available.notify_all()

    def _perform(self, entry: OutboxEntry) -> EffectOutcome:
        """Invoke the effect of an entry and classify the result."""
        entry.attempts += 1
        self._stats.effects_started += 1
        start_time = time.time()

        try:
            result = self._invoke(entry.effect)
        except Exception as e:
            elapsed = time.time() - start_time
            if self._policy.should_retry(e, entry.attempts):
                delay = self._policy.backoff_for(entry.attempts)
                self._stats.effects_retried += 1
                logger.warning(
                    "Attempt %d for %s failed: %s. Retrying in %.1fs...",
                    entry.attempts,
                    entry,
                    e,
                    delay,
                )
                return EffectOutcome(
                    entry=entry,
                    status=OutcomeStatus.RETRYING,
                    error=e,
                    elapsed_time=elapsed,
                    retry_delay=delay,
                )

            self._stats.effects_failed += 1
            logger.warning("Effect failed permanently for %s: %s", entry, e)
            return EffectOutcome(
                entry=entry,
                status=OutcomeStatus.FAILED,
                error=e,
                elapsed_time=elapsed,
            )

        elapsed = time.time() - start_time
        self._stats.effects_succeeded += 1
        logger.debug("Effect succeeded for %s in %.3fs", entry, elapsed)
        return EffectOutcome(
            entry=entry,
            status=OutcomeStatus.SUCCEEDED,
            result=result,
            elapsed_time=elapsed,
        )

    def _invoke(self, request: EffectRequest) -> Any:
        perform = getattr(self._effect, "perform_effect", self._effect)
        timeout = self._policy.effect_timeout
        if timeout is None:
            return perform(request)

        # One worker per timed call: a stalled call never delays the next one
        future: Future[Any] = Future()
        started = threading.Event()

        def run() -> None:
            future.set_running_or_notify_cancel()
            started.set()
            try:
                future.set_result(perform(request))
            except Exception as e:
                future.set_exception(e)

        worker = threading.Thread(target=run, name="OfflineEffect", daemon=True)
        worker.start()
        started.wait()
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            if future.done():
                return future.result()
            logger.warning("Abandoning stalled %s %s", request.method, request.url)
            raise EffectTimeoutError(
                f"{request.method} {request.url} did not resolve within {timeout}s"
            ) from None

    # -------------------------------------------------------------------------
    # Background thread
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the executor processing thread."""
        with self._lifecycle_lock:
            if self._lifecycle != LifecycleState.STOPPED:
                logger.warning("Executor already running")
                return

            self._lifecycle = LifecycleState.RUNNING
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="EffectExecutor",
                daemon=True,
            )
            self._thread.start()
            logger.info("Executor started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the executor.

        An in-flight effect is not cancelled; the thread exits once it
        resolves or ``timeout`` expires.

        Args:
            timeout: Maximum time to wait for thread to stop
        """
        with self._lifecycle_lock:
            if self._lifecycle == LifecycleState.STOPPED:
                return
            self._lifecycle = LifecycleState.STOPPING
            self._stop_event.set()
            logger.info("Executor stopping...")

        self.notify()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

        with self._lifecycle_lock:
            self._lifecycle = LifecycleState.STOPPED
            self._thread = None
            logger.info("Executor stopped")

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no effect is in flight and none can start.

        Args:
            timeout: Maximum seconds to wait (None = wait forever)

        Returns:
            True if idle, False if timeout expired
        """
        deadline = None if timeout is None else time.time() + timeout
        with self._work_available:
            while self._state == ExecutorState.EXECUTING or self.has_work():
                if deadline is None:
                    self._work_available.wait(timeout=self._idle_poll_interval)
                    continue
                remaining = deadline - time.time()
                if remaining <= 0:
                    return False
                self._work_available.wait(timeout=min(remaining, self._idle_poll_interval))
            return True

    def _run(self) -> None:
        """Main processing loop."""
        logger.debug("Executor processing loop started")

        while self._lifecycle == LifecycleState.RUNNING and not self._stop_event.is_set():
            with self._work_available:
                if not self.has_work():
                    self._work_available.wait(timeout=self._idle_poll_interval)
                    continue

            try:
                self.run_once()
            except Exception:
                logger.exception("Error processing outbox")
                self._stats.errors += 1
                self._stop_event.wait(self._idle_poll_interval)

        logger.debug("Executor processing loop ended")
