"""Controller settings, read once at startup from the environment or YAML."""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from cost_killer.errors import ConfigError
from cost_killer.shutdown import RetryPolicy, ShutdownTarget

logger = logging.getLogger(__name__)

# Environment variable -> settings field
ENV_KEYS: dict[str, str] = {
    "PROJECT_ID": "project_id",
    "ZONE": "zone",
    "INSTANCE_NAME": "instance_name",
    "SHUTDOWN_THRESHOLD": "shutdown_threshold",
    "WARN_THRESHOLD": "warn_threshold",
    "MAX_OVERRIDE_RATIO": "max_override_ratio",
    "OVERRIDE_COLLECTION": "override_collection",
    "OVERRIDE_DOCUMENT": "override_document",
    "OVERRIDE_TIMEOUT_SECONDS": "override_timeout_seconds",
    "STOP_TIMEOUT_SECONDS": "stop_timeout_seconds",
    "MAX_STOP_ATTEMPTS": "max_stop_attempts",
    "RETRY_BASE_DELAY_SECONDS": "retry_base_delay_seconds",
    "LOG_LEVEL": "log_level",
}

_FIELD_TO_ENV = {v: k for k, v in ENV_KEYS.items()}
_TARGET_FIELDS = ("project_id", "zone", "instance_name")
_STRING_FIELDS = (*_TARGET_FIELDS, "override_collection", "override_document", "log_level")


class ControllerSettings(BaseModel):
    """Configuration of the budget controller.

    Numeric values that cannot be parsed, or are not positive, fall back
    to their defaults with a warning rather than failing startup.
    """

    project_id: str | None = Field(default=None, description="Project owning the instance")
    zone: str | None = Field(default=None, description="Zone of the instance")
    instance_name: str | None = Field(default=None, description="Instance to stop")
    shutdown_threshold: float = Field(default=1.0, gt=0)
    warn_threshold: float = Field(default=0.8, gt=0)
    max_override_ratio: float = Field(
        default=1.5,
        gt=0,
        description="Cost ratio at or above which an enabled override is ignored",
    )
    override_collection: str = "cost_killer_override"
    override_document: str = "override"
    override_timeout_seconds: float = Field(default=5.0, gt=0)
    stop_timeout_seconds: float = Field(default=60.0, gt=0)
    max_stop_attempts: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=2.0, ge=0)
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _clamp_warn_threshold(self) -> ControllerSettings:
        if self.warn_threshold > self.shutdown_threshold:
            logger.warning(
                "WARN_THRESHOLD %.2f exceeds SHUTDOWN_THRESHOLD %.2f; clamping.",
                self.warn_threshold,
                self.shutdown_threshold,
            )
            self.warn_threshold = self.shutdown_threshold
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ControllerSettings:
        """Build settings from field-named values, tolerating bad numbers.

        Numeric identifiers (a YAML ``project_id: 123456``) are read as
        strings.

        Raises:
            ValueError: a text setting holds something other than a string
                or a number.
        """
        cleaned: dict[str, Any] = {}
        for name, value in data.items():
            if name not in cls.model_fields or value is None:
                continue
            if name in _STRING_FIELDS and _is_plain_number(value):
                value = str(value)
            if isinstance(value, str):
                value = value.strip()
                if value == "":
                    continue
            annotation = cls.model_fields[name].annotation
            if annotation in (float, int):
                value = _coerce_number(name, value, annotation)
                if value is None:
                    continue
            cleaned[name] = value
        try:
            return cls.model_validate(cleaned)
        except ValidationError as exc:
            fields = {str(err["loc"][0]) for err in exc.errors() if err["loc"]}
            keys = sorted(_FIELD_TO_ENV.get(f, f) for f in fields)
            names = ", ".join(keys) or "controller"
            raise ValueError(f"Invalid settings for {names}: {exc}") from exc

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ControllerSettings:
        """Read settings from environment variables."""
        environ = os.environ if environ is None else environ
        return cls.from_mapping(
            {field: environ[key] for key, field in ENV_KEYS.items() if key in environ}
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> ControllerSettings:
        """Load settings from a YAML file with lower-case field names."""
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"Settings file {path} must contain a mapping")
        return cls.from_mapping(data)

    @property
    def override_key(self) -> str:
        return f"{self.override_collection}/{self.override_document}"

    def target(self) -> ShutdownTarget:
        """Return the configured shutdown target.

        Raises:
            ConfigError: any of PROJECT_ID, ZONE or INSTANCE_NAME is missing.
        """
        missing = [_FIELD_TO_ENV[f] for f in _TARGET_FIELDS if not getattr(self, f)]
        if missing:
            raise ConfigError(missing)
        return ShutdownTarget(
            project_id=self.project_id,
            zone=self.zone,
            instance_id=self.instance_name,
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_stop_attempts,
            base_delay=self.retry_base_delay_seconds,
            timeout=self.stop_timeout_seconds,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


# Fields where zero is a meaningful value
_ZERO_ALLOWED = {"retry_base_delay_seconds"}


def _coerce_number(name: str, value: Any, kind: type) -> float | int | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    if kind is int and math.isfinite(number):
        number = float(int(number))
    valid = math.isfinite(number) and (number > 0 or (number == 0 and name in _ZERO_ALLOWED))
    if not valid:
        logger.warning(
            "Invalid value %r for %s; using default %s.",
            value,
            _FIELD_TO_ENV.get(name, name),
            ControllerSettings.model_fields[name].default,
        )
        return None
    return int(number) if kind is int else number


def _is_plain_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
