"""OpenTelemetry attribute keys and metric names for the budget controller.

All attributes are prefixed with 'cost_killer.' to avoid collisions with
standard OTEL conventions.
"""

# --- Attribute Keys ---

# Event attributes
RATIO_CLASS = "cost_killer.ratio.class"
COST_RATIO = "cost_killer.ratio.value"
EVENT_STATUS = "cost_killer.event.status"
BUDGET_NAME = "cost_killer.budget.name"

# Override attributes
OVERRIDE_ACTIVE = "cost_killer.override.active"
OVERRIDE_REASON = "cost_killer.override.reason"

# Shutdown attributes
TARGET_PROJECT = "cost_killer.target.project_id"
TARGET_ZONE = "cost_killer.target.zone"
TARGET_INSTANCE = "cost_killer.target.instance_id"
SHUTDOWN_SUCCEEDED = "cost_killer.shutdown.succeeded"
SHUTDOWN_ATTEMPTS = "cost_killer.shutdown.attempts"

# --- Metric Names ---

METRIC_EVENTS = "cost_killer.events"
METRIC_COST_RATIO = "cost_killer.cost.ratio"
METRIC_OVERRIDE_DECISIONS = "cost_killer.override.decisions"
METRIC_SHUTDOWN_ATTEMPTS = "cost_killer.shutdown.attempts"
METRIC_SHUTDOWNS = "cost_killer.shutdowns"

# --- Span Names ---

SPAN_HANDLE_EVENT = "cost_killer.handle_event"
