"""Shutdown executor — stops the target instance with bounded retries."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_SECONDS = 2.0
DEFAULT_STOP_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class ShutdownTarget:
    """Identity of the compute instance to stop."""

    project_id: str
    zone: str
    instance_id: str

    def to_dict(self) -> dict[str, str]:
        return {
            "project_id": self.project_id,
            "zone": self.zone,
            "instance_id": self.instance_id,
        }

    def __str__(self) -> str:
        return f"projects/{self.project_id}/zones/{self.zone}/instances/{self.instance_id}"


class ComputeClient(Protocol):
    """Compute-control API able to stop one instance."""

    def stop_instance(self, target: ShutdownTarget, timeout: float) -> str:
        """Request a stop and return the operation status.

        Raises:
            TransientAPIError: the request failed.
        """
        ...


def linear_backoff(retry: int, base_delay: float) -> float:
    """Wait ``base_delay * retry`` before the ``retry``-th retry."""
    return base_delay * retry


def exponential_backoff(retry: int, base_delay: float) -> float:
    """Wait ``base_delay * 2 ** (retry - 1)`` before the ``retry``-th retry."""
    return base_delay * (2 ** (retry - 1))


@dataclass(frozen=True)
class RetryPolicy:
    """How many stop attempts to make and how long to wait between them."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS
    timeout: float = DEFAULT_STOP_TIMEOUT_SECONDS
    backoff: Callable[[int, float], float] = linear_backoff

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before 1-indexed ``attempt``; 0 for the first."""
        if attempt <= 1:
            return 0.0
        return self.backoff(attempt - 1, self.base_delay)

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "base_delay": self.base_delay,
            "timeout": self.timeout,
            "backoff": getattr(self.backoff, "__name__", repr(self.backoff)),
        }


@dataclass
class ShutdownOutcome:
    """Result of one stop sequence."""

    attempts: int = 0
    succeeded: bool = False
    last_error: Exception | None = None
    status: str = ""
    delays: list[float] = field(default_factory=list)

    def raise_for_error(self) -> None:
        """Re-raise the final error of a failed sequence."""
        if not self.succeeded and self.last_error is not None:
            raise self.last_error

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempts": self.attempts,
            "succeeded": self.succeeded,
            "last_error": str(self.last_error) if self.last_error else None,
            "status": self.status,
            "delays": list(self.delays),
        }


class ShutdownExecutor:
    """Issues stop requests for a single target.

    Each attempt is one call against the compute client. Failed attempts are
    retried after the policy's backoff until the attempt budget is spent;
    the final error is returned on the outcome and logged, never dropped.
    Repeated stops are assumed to be idempotent on the API side.
    """

    def __init__(
        self,
        client: ComputeClient,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep or time.sleep

    def stop(self, target: ShutdownTarget, max_retries: int | None = None) -> ShutdownOutcome:
        """Stop ``target``, retrying up to ``max_retries`` total attempts."""
        policy = self.retry_policy
        max_attempts = policy.max_attempts if max_retries is None else max_retries
        if max_attempts < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_attempts}")

        outcome = ShutdownOutcome()
        for attempt in range(1, max_attempts + 1):
            delay = policy.delay_before(attempt)
            if delay > 0:
                outcome.delays.append(delay)
                self._sleep(delay)

            outcome.attempts = attempt
            logger.info(
                "Attempt %d: Stopping instance %s in zone %s...",
                attempt,
                target.instance_id,
                target.zone,
            )
            try:
                status = self.client.stop_instance(target, timeout=policy.timeout)
            except Exception as exc:
                outcome.last_error = exc
                logger.warning("Attempt %d failed: %s", attempt, exc)
                continue

            outcome.succeeded = True
            outcome.last_error = None
            outcome.status = str(status)
            logger.info("Stop request successful: %s", outcome.status)
            return outcome

        logger.error(
            "Failed to stop instance %s after %d attempts: %s",
            target,
            outcome.attempts,
            outcome.last_error,
        )
        return outcome
