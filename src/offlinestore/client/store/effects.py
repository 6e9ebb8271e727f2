"""Stand-in network effects.

This module provides:
- SimulatedEffect: Random latency and random rejections, for demos
- ScriptedEffect: Deterministic outcomes in call order, optionally gated

Both echo the request body back on success. Seeding SimulatedEffect makes
a demo session reproducible.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections import deque
from collections.abc import Iterable
from typing import Any

from offlinestore.client.store.types import EffectError, EffectRequest, EffectTimeoutError

logger = logging.getLogger(__name__)


class SimulatedEffect:
    """Randomly succeeding effect.

    Attributes:
        success_rate: Probability that a call succeeds (0.0 to 1.0)
        max_delay: Upper bound of the simulated latency in seconds
    """

    def __init__(
        self,
        success_rate: float = 0.5,
        max_delay: float = 1.0,
        seed: int | None = None,
    ) -> None:
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError(f"success_rate must be between 0 and 1, got {success_rate}")
        self.success_rate = success_rate
        self.max_delay = max_delay
        self._random = random.Random(seed)
        self._lock = threading.Lock()
        self.calls: list[EffectRequest] = []

    def perform_effect(self, request: EffectRequest) -> dict[str, Any]:
        """Simulate the remote call.

        Returns:
            The request body

        Raises:
            EffectError: When the simulated authority rejects the call
        """
        with self._lock:
            self.calls.append(request)
            delay = self._random.random() * self.max_delay
            succeed = self._random.random() < self.success_rate

        if delay > 0:
            time.sleep(delay)

        if not succeed:
            logger.debug("Simulated rejection of %s %s", request.method, request.url)
            raise EffectError(f"Simulated failure for {request.url}")
        return dict(request.json)


class ScriptedEffect:
    """Effect resolving to scripted outcomes, in call order.

    Each outcome is either a value to return or an exception to raise;
    once the script is exhausted the request body is echoed back. With
    ``gated=True`` every call blocks until ``release()`` lets it resolve,
    which keeps an effect observably in flight.

    Usage:
        effect = ScriptedEffect([{"id": 1}, EffectError("rejected")])
        store = OfflineStore(effect=effect)
    """

    def __init__(
        self,
        outcomes: Iterable[Any] = (),
        gated: bool = False,
        gate_timeout: float = 10.0,
    ) -> None:
        self._outcomes: deque[Any] = deque(outcomes)
        self._gated = gated
        self._gate_timeout = gate_timeout
        self._gate = threading.Semaphore(0)
        self._calls_changed = threading.Condition()
        self.calls: list[EffectRequest] = []
        self.resolved = 0

    @classmethod
    def failing(cls, error: BaseException | None = None, times: int = 1) -> ScriptedEffect:
        """Effect failing ``times`` times, then succeeding."""
        return cls([error or EffectError("Rejected") for _ in range(times)])

    def push(self, *outcomes: Any) -> None:
        """Append outcomes to the script."""
        self._outcomes.extend(outcomes)

    def release(self, count: int = 1) -> None:
        """Let ``count`` gated calls resolve."""
        for _ in range(count):
            self._gate.release()

    def wait_for_calls(self, count: int, timeout: float = 5.0) -> bool:
        """Block until at least ``count`` calls started.

        Returns:
            True if reached, False if timeout expired
        """
        with self._calls_changed:
            return self._calls_changed.wait_for(lambda: len(self.calls) >= count, timeout)

    def perform_effect(self, request: EffectRequest) -> Any:
        """Resolve the next scripted outcome."""
        with self._calls_changed:
            self.calls.append(request)
            self._calls_changed.notify_all()

        if self._gated and not self._gate.acquire(timeout=self._gate_timeout):
            raise EffectTimeoutError(f"Gated call to {request.url} was never released")

        outcome = self._outcomes.popleft() if self._outcomes else dict(request.json)
        self.resolved += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
