"""Ratio classifier — turns (cost, budget) into a spend ratio and a class."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

DEFAULT_WARN_THRESHOLD = 0.8
DEFAULT_CRITICAL_THRESHOLD = 1.0


class RatioClass(Enum):
    """How far spend has progressed against the budget."""

    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Classification:
    """A classified cost ratio."""

    ratio_class: RatioClass
    ratio: float

    @property
    def is_critical(self) -> bool:
        return self.ratio_class == RatioClass.CRITICAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "class": self.ratio_class.value,
            "ratio": round(self.ratio, 4),
        }


_SAFE_NOOP = Classification(RatioClass.SAFE, 0.0)


def _is_valid_amount(value: Any) -> bool:
    # bool is an int subclass; a flag is never an amount
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def classify(
    cost_amount: Any,
    budget_amount: Any,
    warn_threshold: float = DEFAULT_WARN_THRESHOLD,
    critical_threshold: float = DEFAULT_CRITICAL_THRESHOLD,
) -> Classification:
    """Classify a cost/budget pair.

    Degenerate input (zero budget, negative, non-finite or non-numeric
    amounts) classifies as SAFE with a ratio of 0 so that bad data can
    never trigger a shutdown.
    """
    if not (_is_valid_amount(cost_amount) and _is_valid_amount(budget_amount)):
        return _SAFE_NOOP
    if budget_amount == 0:
        return _SAFE_NOOP

    ratio = cost_amount / budget_amount
    if ratio >= critical_threshold:
        return Classification(RatioClass.CRITICAL, ratio)
    if ratio >= warn_threshold:
        return Classification(RatioClass.WARNING, ratio)
    return Classification(RatioClass.SAFE, ratio)
