"""Tests for failure policy."""

from __future__ import annotations

import pytest

from offlinestore.client.store.retry import (
    DEFAULT_MAX_RETRIES,
    NETWORK_EXCEPTIONS,
    FailurePolicy,
)
from offlinestore.client.store.types import EffectError, EffectTimeoutError


class TestDefaultPolicy:
    """The default policy treats every failure as permanent."""

    @pytest.mark.parametrize(
        "error",
        [EffectError("rejected"), ConnectionError("down"), TimeoutError("slow"), ValueError()],
    )
    def test_never_retries(self, error: Exception) -> None:
        """No error is transient by default."""
        policy = FailurePolicy()
        assert not policy.is_transient(error)
        assert not policy.should_retry(error, attempts=1)

    def test_no_timeout(self) -> None:
        """Effects wait forever by default."""
        assert FailurePolicy().effect_timeout is None


class TestNetworkAwarePolicy:
    """Tests for FailurePolicy.network_aware()."""

    def test_network_errors_are_transient(self) -> None:
        """Connectivity errors are retried, rejections are not."""
        policy = FailurePolicy.network_aware()

        assert policy.transient_exceptions == NETWORK_EXCEPTIONS
        assert policy.max_retries == DEFAULT_MAX_RETRIES
        assert policy.is_transient(ConnectionError("down"))
        assert policy.is_transient(EffectTimeoutError("slow"))
        assert not policy.is_transient(EffectError("rejected"))

    def test_retries_until_limit(self) -> None:
        """Transient errors are retried max_retries times."""
        policy = FailurePolicy.network_aware(max_retries=2)
        error = ConnectionError("down")

        assert policy.should_retry(error, attempts=1)
        assert policy.should_retry(error, attempts=2)
        assert not policy.should_retry(error, attempts=3)


class TestBackoff:
    """Tests for exponential backoff."""

    def test_exponential_growth(self) -> None:
        """Delays double after each attempt."""
        policy = FailurePolicy(initial_backoff=1.0, backoff_multiplier=2.0, max_backoff=60.0)
        assert [policy.backoff_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self) -> None:
        """Delays never exceed max_backoff."""
        policy = FailurePolicy(initial_backoff=1.0, backoff_multiplier=10.0, max_backoff=5.0)
        assert policy.backoff_for(3) == 5.0

    def test_zero_backoff(self) -> None:
        """A zero initial backoff retries immediately."""
        assert FailurePolicy(initial_backoff=0.0).backoff_for(5) == 0.0
