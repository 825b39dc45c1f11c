"""In-process adapters for dry runs and local evaluation."""

from __future__ import annotations

import logging

from cost_killer.errors import OverrideNotFoundError, OverrideStoreError
from cost_killer.shutdown import ShutdownTarget

logger = logging.getLogger(__name__)


class InMemoryOverrideStore:
    """Override flags held in a dict.

    A missing key reads as not-found; ``unavailable=True`` makes every
    read fail as if the store were down.
    """

    def __init__(self, flags: dict[str, bool] | None = None, unavailable: bool = False) -> None:
        self.flags = dict(flags or {})
        self.unavailable = unavailable

    def read_flag(self, key: str, timeout: float) -> bool:
        if self.unavailable:
            raise OverrideStoreError("override store unavailable", code="UNAVAILABLE")
        if key not in self.flags:
            raise OverrideNotFoundError(f"Override document {key} not found", code="NOT_FOUND")
        return self.flags[key] is True


class DryRunComputeClient:
    """Records stop requests instead of sending them."""

    def __init__(self) -> None:
        self.stopped: list[ShutdownTarget] = []

    def stop_instance(self, target: ShutdownTarget, timeout: float) -> str:
        logger.info("[dry-run] would stop %s", target)
        self.stopped.append(target)
        return "DRY_RUN"
