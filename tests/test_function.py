"""Tests for the Cloud Functions entry point."""

from __future__ import annotations

import base64
import json
from types import SimpleNamespace

import pytest

from cost_killer import function
from cost_killer.adapters import DryRunComputeClient, InMemoryOverrideStore
from cost_killer.adapters.gcp import ComputeEngineClient, FirestoreOverrideStore
from cost_killer.config import ControllerSettings
from cost_killer.controller import BudgetController


def _cloud_event(payload) -> SimpleNamespace:
    data = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    return SimpleNamespace(data={"message": {"data": data}})


@pytest.fixture()
def dry_run(monkeypatch):
    settings = ControllerSettings(project_id="proj", zone="zone-a", instance_name="vm-1")
    compute = DryRunComputeClient()
    controller = BudgetController.from_settings(
        settings,
        store=InMemoryOverrideStore({settings.override_key: False}),
        client=compute,
        sleep=lambda _s: None,
    )
    monkeypatch.setattr(function, "get_controller", lambda: controller)
    return compute


class TestStopBilling:
    def test_over_budget_stops_instance(self, dry_run):
        function.stop_billing(_cloud_event({"costAmount": 120, "budgetAmount": 100}))
        assert [t.instance_id for t in dry_run.stopped] == ["vm-1"]

    def test_under_budget(self, dry_run):
        function.stop_billing(_cloud_event({"costAmount": 20, "budgetAmount": 100}))
        assert dry_run.stopped == []

    def test_missing_data_does_not_raise(self, dry_run):
        function.stop_billing(SimpleNamespace(data={}))
        assert dry_run.stopped == []

    def test_background_signature(self, dry_run):
        data = base64.b64encode(b'{"costAmount": 300, "budgetAmount": 100}').decode("ascii")
        function.stop_billing_background({"data": data}, context=None)
        assert len(dry_run.stopped) == 1


class TestGetController:
    def test_built_from_environment(self, monkeypatch):
        monkeypatch.setenv("PROJECT_ID", "env-proj")
        monkeypatch.setenv("ZONE", "env-zone")
        monkeypatch.setenv("INSTANCE_NAME", "env-vm")
        monkeypatch.setenv("MAX_OVERRIDE_RATIO", "1.2")
        function.get_controller.cache_clear()
        try:
            controller = function.get_controller()
            assert controller is function.get_controller()
            assert controller.settings.max_override_ratio == 1.2
            assert controller.settings.target().project_id == "env-proj"
            assert isinstance(controller.executor.client, ComputeEngineClient)
            assert isinstance(controller.override_gate.store, FirestoreOverrideStore)
        finally:
            function.get_controller.cache_clear()
