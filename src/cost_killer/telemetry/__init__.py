"""OpenTelemetry integration — decision metrics and per-event spans."""

from cost_killer.telemetry.metrics import ControllerMetrics, annotate_classification

__all__ = [
    "ControllerMetrics",
    "annotate_classification",
]
