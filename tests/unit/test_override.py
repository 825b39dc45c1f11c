"""Tests for the override gate."""

import pytest

from cost_killer.adapters import InMemoryOverrideStore
from cost_killer.errors import OverrideStoreError
from cost_killer.override import OverrideGate, OverrideReason

KEY = "cost_killer_override/override"


class _RaisingStore:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc
        self.calls = 0

    def read_flag(self, key: str, timeout: float) -> bool:
        self.calls += 1
        raise self.exc


class _RecordingStore:
    def __init__(self, value) -> None:
        self.value = value
        self.reads: list[tuple[str, float]] = []

    def read_flag(self, key: str, timeout: float):
        self.reads.append((key, timeout))
        return self.value


def _gate(enabled: bool) -> OverrideGate:
    return OverrideGate(InMemoryOverrideStore({KEY: enabled}), key=KEY)


class TestOverrideGate:
    def test_disabled_flag(self):
        decision = _gate(False).check_override(1.2)
        assert decision.active is False
        assert decision.reason == OverrideReason.DISABLED

    def test_enabled_within_ceiling(self):
        decision = _gate(True).check_override(1.49)
        assert decision.active is True
        assert decision.reason == OverrideReason.ENABLED

    @pytest.mark.parametrize("ratio", [1.5, 1.51, 2.0, 10.0, float("inf")])
    def test_enabled_at_or_above_ceiling_is_downgraded(self, ratio):
        decision = _gate(True).check_override(ratio)
        assert decision.active is False
        assert decision.reason == OverrideReason.ENABLED

    def test_custom_ceiling(self):
        gate = _gate(True)
        assert gate.check_override(1.9, max_override_ratio=2.0).active is True
        assert gate.check_override(2.0, max_override_ratio=2.0).active is False

    def test_truthy_non_bool_is_not_enabled(self):
        gate = OverrideGate(_RecordingStore("true"), key=KEY)
        decision = gate.check_override(1.1)
        assert decision.active is False
        assert decision.reason == OverrideReason.DISABLED

    def test_single_read_with_timeout(self):
        store = _RecordingStore(True)
        OverrideGate(store, key=KEY, timeout=2.5).check_override(1.1)
        assert store.reads == [(KEY, 2.5)]


class TestOverrideStoreFailure:
    """A store that cannot be read must never suppress a shutdown."""

    @pytest.mark.parametrize(
        "exc",
        [
            OverrideStoreError("permission denied", code="PERMISSION_DENIED"),
            TimeoutError("read timed out"),
            RuntimeError("unexpected"),
        ],
    )
    def test_failure_is_inactive_and_does_not_raise(self, exc):
        store = _RaisingStore(exc)
        decision = OverrideGate(store, key=KEY).check_override(1.1)
        assert decision.active is False
        assert decision.reason == OverrideReason.STORE_UNAVAILABLE
        assert store.calls == 1

    def test_missing_document(self):
        decision = OverrideGate(InMemoryOverrideStore(), key=KEY).check_override(1.1)
        assert decision.active is False
        assert decision.reason == OverrideReason.STORE_UNAVAILABLE

    def test_unavailable_store(self):
        store = InMemoryOverrideStore({KEY: True}, unavailable=True)
        decision = OverrideGate(store, key=KEY).check_override(1.1)
        assert decision.active is False
        assert decision.reason == OverrideReason.STORE_UNAVAILABLE
        assert "unavailable" in decision.detail
