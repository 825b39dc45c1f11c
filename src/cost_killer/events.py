"""Billing events — the budget notification payload and its Pub/Sub envelope."""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cost_killer.errors import DataError


class BudgetEvent(BaseModel):
    """A budget notification: spend so far against the budget amount."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    cost_amount: float = Field(..., alias="costAmount", ge=0.0, allow_inf_nan=False)
    budget_amount: float = Field(..., alias="budgetAmount", ge=0.0, allow_inf_nan=False)
    budget_display_name: str | None = Field(default=None, alias="budgetDisplayName")
    currency_code: str | None = Field(default=None, alias="currencyCode")
    alert_threshold_exceeded: float | None = Field(default=None, alias="alertThresholdExceeded")
    cost_interval_start: str | None = Field(default=None, alias="costIntervalStart")

    @field_validator("cost_amount", "budget_amount", mode="before")
    @classmethod
    def _reject_booleans(cls, value: Any) -> Any:
        # Lax mode would read true/false as 1.0/0.0
        if isinstance(value, bool):
            raise ValueError("amount must be a number, not a boolean")
        return value

    @classmethod
    def parse(cls, payload: BudgetEvent | Mapping[str, Any] | str | bytes) -> BudgetEvent:
        """Build an event from a decoded mapping or a raw JSON document.

        Raises:
            DataError: the payload is not valid JSON or lacks numeric amounts.
        """
        if isinstance(payload, BudgetEvent):
            return payload
        if isinstance(payload, (str, bytes, bytearray)):
            try:
                payload = json.loads(payload)
            except (ValueError, UnicodeDecodeError) as exc:
                raise DataError(f"Invalid JSON payload: {exc}") from exc
        if not isinstance(payload, Mapping):
            raise DataError(f"Expected a JSON object, got {type(payload).__name__}")
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            raise DataError(
                f"Invalid amounts - Cost: {payload.get('costAmount')!r}, "
                f"Budget: {payload.get('budgetAmount')!r}. Cannot calculate threshold."
            ) from exc

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _decode_base64_json(data: Any) -> Any:
    try:
        if isinstance(data, str):
            data = data.encode("ascii")
        raw = base64.b64decode(data, validate=True)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeDecodeError, TypeError) as exc:
        raise DataError(f"Could not decode Pub/Sub message data: {exc}") from exc


def decode_pubsub_message(message: Any) -> BudgetEvent:
    """Decode a Pub/Sub message carrying a budget notification.

    Accepts both the CloudEvent body (``{"message": {"data": ...}}``) and a
    bare message (``{"data": ...}``) as delivered to background functions.

    Raises:
        DataError: no data was received or it could not be decoded.
    """
    if not message:
        raise DataError("No data received from Pub/Sub.")
    if not isinstance(message, Mapping):
        raise DataError(f"Expected a Pub/Sub message object, got {type(message).__name__}")
    if "message" in message:
        message = message["message"]
        if not isinstance(message, Mapping):
            raise DataError(f"Expected a Pub/Sub message object, got {type(message).__name__}")
    data = message.get("data")
    if not data:
        raise DataError("No data received from Pub/Sub.")
    return BudgetEvent.parse(_decode_base64_json(data))
