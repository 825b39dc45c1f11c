"""Error taxonomy for the budget controller.

None of these are fatal: the controller reports them on the event result
and moves on to the next event.
"""

from __future__ import annotations


class CostKillerError(Exception):
    """Base class for all cost-killer errors."""


class DataError(CostKillerError):
    """Raised when a billing event cannot be parsed."""


class ConfigError(CostKillerError):
    """Raised when the shutdown target identity is incomplete."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            f"Missing configuration ({', '.join(missing)}). Skipping VM shutdown."
        )


class TransientAPIError(CostKillerError):
    """A failed call against an external API, carrying its error code."""

    def __init__(self, message: str, code: str | int | None = None) -> None:
        self.code = code
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.code is None:
            return base
        return f"[{self.code}] {base}"


class OverrideStoreError(TransientAPIError):
    """The override flag could not be read."""


class OverrideNotFoundError(OverrideStoreError):
    """The override document does not exist."""
