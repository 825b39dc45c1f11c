"""Cloud Functions entry point, triggered by budget notifications on Pub/Sub.

Deploy with ``--entry-point stop_billing``. Settings are read from the
environment once per process and the controller is reused across events.
"""

from __future__ import annotations

import functools
import logging
import os
from typing import Any

import functions_framework

from cost_killer.adapters.gcp import ComputeEngineClient, FirestoreOverrideStore
from cost_killer.config import ControllerSettings
from cost_killer.controller import BudgetController

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@functools.lru_cache(maxsize=1)
def get_controller() -> BudgetController:
    """Build the process-wide controller from the environment."""
    settings = ControllerSettings.from_env()
    configure_logging(settings.log_level)
    return BudgetController.from_settings(
        settings,
        store=FirestoreOverrideStore(),
        client=ComputeEngineClient(),
    )


@functions_framework.cloud_event
def stop_billing(cloud_event: Any) -> None:
    """Handle a budget notification CloudEvent."""
    result = get_controller().handle_message(cloud_event.data)
    logger.info("Budget event finished with status %s", result.status.value)


def stop_billing_background(message: dict[str, Any], context: Any = None) -> None:
    """Handle a budget notification delivered to a background function."""
    result = get_controller().handle_message(message)
    logger.info("Budget event finished with status %s", result.status.value)
