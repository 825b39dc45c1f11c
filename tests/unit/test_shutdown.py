"""Tests for the shutdown executor and retry policy."""

import pytest

from cost_killer.errors import TransientAPIError
from cost_killer.shutdown import (
    RetryPolicy,
    ShutdownExecutor,
    ShutdownOutcome,
    ShutdownTarget,
    exponential_backoff,
    linear_backoff,
)

TARGET = ShutdownTarget(project_id="proj", zone="us-central1-a", instance_id="vm-1")


class _FlakyClient:
    """Fails the first ``failures`` calls, then succeeds."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.calls: list[tuple[ShutdownTarget, float]] = []

    def stop_instance(self, target: ShutdownTarget, timeout: float) -> str:
        self.calls.append((target, timeout))
        if len(self.calls) <= self.failures:
            raise TransientAPIError(f"throttled #{len(self.calls)}", code=429)
        return "RUNNING"


class _Sleeper:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.base_delay == 2.0
        assert policy.delay_before(1) == 0.0
        assert policy.delay_before(2) == 2.0
        assert policy.delay_before(3) == 4.0

    def test_exponential(self):
        policy = RetryPolicy(max_attempts=5, base_delay=1.0, backoff=exponential_backoff)
        assert [policy.delay_before(i) for i in range(1, 6)] == [0.0, 1.0, 2.0, 4.0, 8.0]

    def test_backoff_functions(self):
        assert linear_backoff(3, 2.0) == 6.0
        assert exponential_backoff(3, 2.0) == 8.0

    def test_invalid(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            RetryPolicy(base_delay=-1)

    def test_to_dict(self):
        d = RetryPolicy().to_dict()
        assert d["backoff"] == "linear_backoff"
        assert d["max_attempts"] == 3


class TestShutdownExecutor:
    def test_success_first_attempt(self):
        client = _FlakyClient()
        sleeper = _Sleeper()
        outcome = ShutdownExecutor(client, sleep=sleeper).stop(TARGET)
        assert outcome.succeeded is True
        assert outcome.attempts == 1
        assert outcome.last_error is None
        assert outcome.status == "RUNNING"
        assert sleeper.delays == []
        assert client.calls == [(TARGET, 60.0)]

    def test_recovers_after_transient_failures(self):
        client = _FlakyClient(failures=2)
        sleeper = _Sleeper()
        outcome = ShutdownExecutor(client, sleep=sleeper).stop(TARGET)
        assert outcome.succeeded is True
        assert outcome.attempts == 3
        assert sleeper.delays == [2.0, 4.0]

    def test_gives_up_after_three_attempts(self):
        client = _FlakyClient(failures=10)
        sleeper = _Sleeper()
        outcome = ShutdownExecutor(client, sleep=sleeper).stop(TARGET)
        assert len(client.calls) == 3
        assert outcome.attempts == 3
        assert outcome.succeeded is False
        assert isinstance(outcome.last_error, TransientAPIError)
        assert "throttled #3" in str(outcome.last_error)
        assert sleeper.delays == sorted(sleeper.delays)
        assert outcome.delays == sleeper.delays

    def test_raise_for_error(self):
        outcome = ShutdownExecutor(_FlakyClient(failures=10), sleep=_Sleeper()).stop(TARGET)
        with pytest.raises(TransientAPIError):
            outcome.raise_for_error()

    def test_raise_for_error_noop_on_success(self):
        ShutdownOutcome(attempts=1, succeeded=True).raise_for_error()

    def test_max_retries_override(self):
        client = _FlakyClient(failures=10)
        outcome = ShutdownExecutor(client, sleep=_Sleeper()).stop(TARGET, max_retries=5)
        assert len(client.calls) == 5
        assert outcome.attempts == 5

    def test_max_retries_must_be_positive(self):
        with pytest.raises(ValueError):
            ShutdownExecutor(_FlakyClient(), sleep=_Sleeper()).stop(TARGET, max_retries=0)

    def test_policy_timeout_passed_to_client(self):
        client = _FlakyClient()
        policy = RetryPolicy(timeout=12.0)
        ShutdownExecutor(client, policy, sleep=_Sleeper()).stop(TARGET)
        assert client.calls[0][1] == 12.0

    def test_outcome_to_dict(self):
        outcome = ShutdownExecutor(_FlakyClient(failures=1), sleep=_Sleeper()).stop(TARGET)
        d = outcome.to_dict()
        assert d["attempts"] == 2
        assert d["succeeded"] is True
        assert d["last_error"] is None
        assert d["delays"] == [2.0]


class TestShutdownTarget:
    def test_str(self):
        assert str(TARGET) == "projects/proj/zones/us-central1-a/instances/vm-1"

    def test_immutable(self):
        with pytest.raises(AttributeError):
            TARGET.zone = "elsewhere"
