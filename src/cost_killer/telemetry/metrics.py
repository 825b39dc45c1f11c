"""OpenTelemetry metrics and spans for the budget controller.

Usage:
    from cost_killer.telemetry import ControllerMetrics

    metrics = ControllerMetrics()
    controller = BudgetController(settings, gate, executor, metrics=metrics)

Metrics go through whatever MeterProvider is configured; with none
configured the OTEL API falls back to no-op instruments.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics, trace
from opentelemetry.metrics import Meter
from opentelemetry.trace import Tracer

from cost_killer.telemetry.conventions import (
    BUDGET_NAME,
    COST_RATIO,
    EVENT_STATUS,
    METRIC_COST_RATIO,
    METRIC_EVENTS,
    METRIC_OVERRIDE_DECISIONS,
    METRIC_SHUTDOWN_ATTEMPTS,
    METRIC_SHUTDOWNS,
    OVERRIDE_ACTIVE,
    OVERRIDE_REASON,
    RATIO_CLASS,
    SHUTDOWN_SUCCEEDED,
    TARGET_INSTANCE,
    TARGET_PROJECT,
    TARGET_ZONE,
)

if TYPE_CHECKING:
    from cost_killer.classifier import Classification
    from cost_killer.override import OverrideDecision
    from cost_killer.shutdown import ShutdownOutcome, ShutdownTarget

logger = logging.getLogger(__name__)

_SCOPE = "cost_killer"
_VERSION = "0.1.0"


class ControllerMetrics:
    """Counters, a ratio gauge and a tracer for controller decisions."""

    def __init__(
        self,
        meter_provider: metrics.MeterProvider | None = None,
        tracer_provider: trace.TracerProvider | None = None,
    ) -> None:
        if meter_provider:
            self._meter: Meter = meter_provider.get_meter(_SCOPE, version=_VERSION)
        else:
            self._meter = metrics.get_meter(_SCOPE, version=_VERSION)
        if tracer_provider:
            self.tracer: Tracer = tracer_provider.get_tracer(_SCOPE, _VERSION)
        else:
            self.tracer = trace.get_tracer(_SCOPE, _VERSION)

        self._events = self._meter.create_counter(
            METRIC_EVENTS,
            unit="1",
            description="Billing events handled, by classification and status",
        )
        self._cost_ratio = self._meter.create_gauge(
            METRIC_COST_RATIO,
            unit="1",
            description="Last observed cost/budget ratio",
        )
        self._override_decisions = self._meter.create_counter(
            METRIC_OVERRIDE_DECISIONS,
            unit="1",
            description="Override evaluations, by reason and outcome",
        )
        self._shutdown_attempts = self._meter.create_counter(
            METRIC_SHUTDOWN_ATTEMPTS,
            unit="1",
            description="Stop requests issued against the compute API",
        )
        self._shutdowns = self._meter.create_counter(
            METRIC_SHUTDOWNS,
            unit="1",
            description="Completed shutdown sequences, by success",
        )

    def record_event(
        self,
        status: str,
        classification: Classification | None = None,
        budget_name: str | None = None,
    ) -> None:
        """Count one handled event and update the ratio gauge."""
        attrs: dict[str, Any] = {EVENT_STATUS: status}
        if classification is not None:
            attrs[RATIO_CLASS] = classification.ratio_class.value
            gauge_attrs: dict[str, Any] = {}
            if budget_name:
                gauge_attrs[BUDGET_NAME] = budget_name
            self._cost_ratio.set(classification.ratio, gauge_attrs)
        self._events.add(1, attrs)

    def record_override(self, decision: OverrideDecision) -> None:
        self._override_decisions.add(
            1,
            {OVERRIDE_REASON: decision.reason.value, OVERRIDE_ACTIVE: decision.active},
        )

    def record_shutdown(self, target: ShutdownTarget, outcome: ShutdownOutcome) -> None:
        """Record the attempts and result of a stop sequence."""
        attrs: dict[str, Any] = {
            TARGET_PROJECT: target.project_id,
            TARGET_ZONE: target.zone,
            TARGET_INSTANCE: target.instance_id,
        }
        self._shutdown_attempts.add(outcome.attempts, attrs)
        self._shutdowns.add(1, {**attrs, SHUTDOWN_SUCCEEDED: outcome.succeeded})


def annotate_classification(span: trace.Span, classification: Classification) -> None:
    """Set ratio attributes on an event span."""
    span.set_attribute(RATIO_CLASS, classification.ratio_class.value)
    span.set_attribute(COST_RATIO, classification.ratio)
