"""Override gate — a bounded, fail-safe manual override of the shutdown.

An operator can set a boolean flag in the override store to delay the
shutdown. The flag is honoured only while spend stays below a ratio
ceiling, and any failure to read it counts as "no override".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DEFAULT_MAX_OVERRIDE_RATIO = 1.5
DEFAULT_OVERRIDE_KEY = "cost_killer_override/override"
DEFAULT_READ_TIMEOUT_SECONDS = 5.0


class OverrideStore(Protocol):
    """Key-value store holding the override flag."""

    def read_flag(self, key: str, timeout: float) -> bool:
        """Return the flag stored under ``key``.

        Raises:
            OverrideStoreError: the flag could not be read.
        """
        ...


class OverrideReason(Enum):
    """Why an override decision came out the way it did."""

    NOT_REQUESTED = "not_requested"
    STORE_UNAVAILABLE = "store_unavailable"
    DISABLED = "disabled"
    ENABLED = "enabled"


@dataclass(frozen=True)
class OverrideDecision:
    """Result of a single override evaluation."""

    active: bool
    reason: OverrideReason
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "reason": self.reason.value,
            "detail": self.detail,
        }


NOT_REQUESTED = OverrideDecision(active=False, reason=OverrideReason.NOT_REQUESTED)


class OverrideGate:
    """Reads the override flag and applies the ratio ceiling.

    The check is two-tier: the flag must be set AND the observed ratio must
    be below ``max_override_ratio``. An override therefore only delays a
    shutdown; once spend runs far enough past budget it is ignored.
    """

    def __init__(
        self,
        store: OverrideStore,
        key: str = DEFAULT_OVERRIDE_KEY,
        timeout: float = DEFAULT_READ_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.key = key
        self.timeout = timeout

    def check_override(
        self,
        observed_ratio: float,
        max_override_ratio: float = DEFAULT_MAX_OVERRIDE_RATIO,
    ) -> OverrideDecision:
        """Evaluate the override for the observed cost ratio. Never raises."""
        try:
            enabled = self.store.read_flag(self.key, self.timeout)
        except Exception as exc:
            # Store failures must fall through to the shutdown path
            logger.warning(
                "Error checking for override at %s: %s. Proceeding without override.",
                self.key,
                exc,
            )
            return OverrideDecision(
                active=False,
                reason=OverrideReason.STORE_UNAVAILABLE,
                detail=str(exc),
            )

        if enabled is not True:
            return OverrideDecision(
                active=False,
                reason=OverrideReason.DISABLED,
                detail="override flag not set",
            )

        if observed_ratio >= max_override_ratio:
            logger.warning(
                "Override enabled but cost ratio %.2f is at or above the %.2f ceiling. "
                "Ignoring override.",
                observed_ratio,
                max_override_ratio,
            )
            return OverrideDecision(
                active=False,
                reason=OverrideReason.ENABLED,
                detail=f"ratio {observed_ratio:.2f} >= ceiling {max_override_ratio:.2f}",
            )

        logger.info(
            "Override enabled and cost ratio %.2f is below the %.2f ceiling. Skipping shutdown.",
            observed_ratio,
            max_override_ratio,
        )
        return OverrideDecision(
            active=True,
            reason=OverrideReason.ENABLED,
            detail=f"ratio {observed_ratio:.2f} < ceiling {max_override_ratio:.2f}",
        )
