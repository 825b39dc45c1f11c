"""Budget controller — per-event decision on whether to stop the instance.

Each event runs through a short state machine and is finished after one
pass::

    RECEIVED -> CLASSIFIED -> DONE                         (safe / warning)
                           -> OVERRIDE_CHECKED -> OVERRIDDEN -> DONE
                                               -> NOT_OVERRIDDEN
                                                  -> SHUTDOWN_ATTEMPTED -> DONE

The controller keeps no per-event state on itself, so concurrent
invocations never interfere; everything an event produces lives on its
``EventResult``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from cost_killer.classifier import Classification, RatioClass, classify
from cost_killer.errors import ConfigError, DataError
from cost_killer.events import BudgetEvent, decode_pubsub_message
from cost_killer.override import NOT_REQUESTED, OverrideDecision, OverrideGate
from cost_killer.shutdown import ShutdownExecutor, ShutdownOutcome
from cost_killer.telemetry import ControllerMetrics, annotate_classification
from cost_killer.telemetry.conventions import (
    EVENT_STATUS,
    OVERRIDE_ACTIVE,
    OVERRIDE_REASON,
    SHUTDOWN_ATTEMPTS,
    SHUTDOWN_SUCCEEDED,
    SPAN_HANDLE_EVENT,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from cost_killer.config import ControllerSettings
    from cost_killer.override import OverrideStore
    from cost_killer.shutdown import ComputeClient

logger = logging.getLogger(__name__)


class EventState(Enum):
    """States an event passes through."""

    RECEIVED = "received"
    CLASSIFIED = "classified"
    OVERRIDE_CHECKED = "override_checked"
    OVERRIDDEN = "overridden"
    NOT_OVERRIDDEN = "not_overridden"
    SHUTDOWN_ATTEMPTED = "shutdown_attempted"
    DONE = "done"


class EventStatus(Enum):
    """How an event finished."""

    HANDLED = "handled"
    DATA_ERROR = "data_error"
    CONFIG_ERROR = "config_error"
    SHUTDOWN_FAILED = "shutdown_failed"
    INTERNAL_ERROR = "internal_error"


@dataclass
class EventResult:
    """Everything one event produced, including its audit trail."""

    status: EventStatus = EventStatus.HANDLED
    states: list[EventState] = field(default_factory=list)
    event: BudgetEvent | None = None
    classification: Classification | None = None
    override: OverrideDecision = NOT_REQUESTED
    shutdown: ShutdownOutcome | None = None
    error: str = ""
    audit: list[dict[str, Any]] = field(default_factory=list)

    @property
    def state(self) -> EventState | None:
        return self.states[-1] if self.states else None

    @property
    def shutdown_attempted(self) -> bool:
        return self.shutdown is not None

    @property
    def ok(self) -> bool:
        return self.status == EventStatus.HANDLED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "states": [s.value for s in self.states],
            "event": self.event.to_dict() if self.event else None,
            "classification": self.classification.to_dict() if self.classification else None,
            "override": self.override.to_dict(),
            "shutdown": self.shutdown.to_dict() if self.shutdown else None,
            "error": self.error,
        }


class BudgetController:
    """Classifies billing events and stops the instance when spend is critical.

    A shutdown is attempted only for a CRITICAL classification with no
    active override. Malformed events and missing target configuration
    are reported on the result; ``handle`` never raises.
    """

    def __init__(
        self,
        settings: ControllerSettings,
        override_gate: OverrideGate,
        executor: ShutdownExecutor,
        metrics: ControllerMetrics | None = None,
    ) -> None:
        self.settings = settings
        self.override_gate = override_gate
        self.executor = executor
        self.metrics = metrics or ControllerMetrics()

    @classmethod
    def from_settings(
        cls,
        settings: ControllerSettings,
        store: OverrideStore,
        client: ComputeClient,
        metrics: ControllerMetrics | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> BudgetController:
        """Wire a controller from settings and the two external clients."""
        gate = OverrideGate(
            store,
            key=settings.override_key,
            timeout=settings.override_timeout_seconds,
        )
        executor = ShutdownExecutor(client, settings.retry_policy(), sleep=sleep)
        return cls(settings, gate, executor, metrics=metrics)

    def handle(
        self,
        payload: BudgetEvent | Mapping[str, Any] | str | bytes,
        decoder: Callable[[Any], BudgetEvent] = BudgetEvent.parse,
    ) -> EventResult:
        """Process one billing event to completion.

        ``decoder`` turns the payload into a ``BudgetEvent`` and raises
        ``DataError`` when it cannot.
        """
        result = EventResult()
        with self.metrics.tracer.start_as_current_span(SPAN_HANDLE_EVENT) as span:
            self._transition(result, EventState.RECEIVED)
            try:
                self._process(payload, decoder, result, span)
            except Exception as exc:
                logger.exception("Unexpected error while handling billing event")
                result.status = EventStatus.INTERNAL_ERROR
                result.error = f"{type(exc).__name__}: {exc}"
                self._transition(result, EventState.DONE, error=result.error)
            span.set_attribute(EVENT_STATUS, result.status.value)

        budget_name = result.event.budget_display_name if result.event else None
        self.metrics.record_event(result.status.value, result.classification, budget_name)
        return result

    def _process(
        self,
        payload: Any,
        decoder: Callable[[Any], BudgetEvent],
        result: EventResult,
        span: Any,
    ) -> None:
        settings = self.settings

        try:
            event = decoder(payload)
        except DataError as exc:
            logger.error("Malformed billing event: %s", exc)
            result.status = EventStatus.DATA_ERROR
            result.error = str(exc)
            self._transition(result, EventState.DONE, error=result.error)
            return
        result.event = event

        if event.budget_amount == 0:
            logger.warning("Budget amount is zero or missing. Cannot calculate threshold.")

        classification = classify(
            event.cost_amount,
            event.budget_amount,
            warn_threshold=settings.warn_threshold,
            critical_threshold=settings.shutdown_threshold,
        )
        result.classification = classification
        annotate_classification(span, classification)
        logger.info(
            "Budget Status: $%s / $%s (Ratio: %.2f). Shutdown threshold is set to: %.2f",
            event.cost_amount,
            event.budget_amount,
            classification.ratio,
            settings.shutdown_threshold,
        )
        self._transition(
            result,
            EventState.CLASSIFIED,
            ratio=classification.ratio,
            ratio_class=classification.ratio_class.value,
        )

        if classification.ratio_class == RatioClass.SAFE:
            logger.info("Budget is within safe limits.")
            self._transition(result, EventState.DONE)
            return
        if classification.ratio_class == RatioClass.WARNING:
            logger.warning(
                "Approaching budget limit (%.0f%%). VM will shut down at %.0f%%.",
                classification.ratio * 100,
                settings.shutdown_threshold * 100,
            )
            self._transition(result, EventState.DONE)
            return

        logger.warning("Budget limit reached or exceeded! Initiating VM shutdown protocol...")
        decision = self.override_gate.check_override(
            classification.ratio, max_override_ratio=settings.max_override_ratio
        )
        result.override = decision
        self.metrics.record_override(decision)
        span.set_attribute(OVERRIDE_ACTIVE, decision.active)
        span.set_attribute(OVERRIDE_REASON, decision.reason.value)
        self._transition(result, EventState.OVERRIDE_CHECKED, **decision.to_dict())

        if decision.active:
            self._transition(result, EventState.OVERRIDDEN)
            self._transition(result, EventState.DONE)
            return
        self._transition(result, EventState.NOT_OVERRIDDEN)

        try:
            target = settings.target()
        except ConfigError as exc:
            logger.error("%s", exc)
            result.status = EventStatus.CONFIG_ERROR
            result.error = str(exc)
            self._transition(result, EventState.DONE, error=result.error)
            return

        outcome = self.executor.stop(target)
        result.shutdown = outcome
        self.metrics.record_shutdown(target, outcome)
        span.set_attribute(SHUTDOWN_ATTEMPTS, outcome.attempts)
        span.set_attribute(SHUTDOWN_SUCCEEDED, outcome.succeeded)
        self._transition(
            result,
            EventState.SHUTDOWN_ATTEMPTED,
            target=str(target),
            **outcome.to_dict(),
        )

        if not outcome.succeeded:
            logger.error(
                "Shutdown failed; instance %s may still be running: %s",
                target,
                outcome.last_error,
            )
            result.status = EventStatus.SHUTDOWN_FAILED
            result.error = str(outcome.last_error)
        self._transition(result, EventState.DONE)

    def handle_message(self, message: Any) -> EventResult:
        """Process a Pub/Sub message carrying a budget notification."""
        return self.handle(message, decoder=decode_pubsub_message)

    def _transition(self, result: EventResult, state: EventState, **details: Any) -> None:
        """Move the event to ``state`` and record an audit entry."""
        result.states.append(state)
        entry: dict[str, Any] = {
            "event": state.value,
            "timestamp": time.time(),
            **details,
        }
        result.audit.append(entry)
        logger.info("budget event: %s", entry)
