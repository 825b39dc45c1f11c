"""cost-killer — stop a compute instance when spend crosses its budget.

Budget notifications arrive as ``{costAmount, budgetAmount}`` events. Each
event is classified by its cost ratio; a CRITICAL ratio stops the
configured instance unless an operator override is active.

Core concepts
-------------
* **Classification** — ``classify()`` maps cost/budget to SAFE, WARNING or
  CRITICAL. Bad input is always SAFE.

* **Override** — a boolean flag in an external store that delays the
  shutdown, but only while the ratio stays below ``MAX_OVERRIDE_RATIO``.
  A store that cannot be read never suppresses a shutdown.

* **Shutdown** — a stop request against the compute API, retried with a
  ``RetryPolicy``.

Quick start::

    from cost_killer import BudgetController, ControllerSettings
    from cost_killer.adapters import DryRunComputeClient, InMemoryOverrideStore

    settings = ControllerSettings(project_id="p", zone="z", instance_name="vm")
    controller = BudgetController.from_settings(
        settings, store=InMemoryOverrideStore(), client=DryRunComputeClient()
    )
    result = controller.handle({"costAmount": 120, "budgetAmount": 100})
"""

from cost_killer.classifier import Classification, RatioClass, classify
from cost_killer.config import ControllerSettings
from cost_killer.controller import BudgetController, EventResult, EventState, EventStatus
from cost_killer.errors import (
    ConfigError,
    CostKillerError,
    DataError,
    OverrideNotFoundError,
    OverrideStoreError,
    TransientAPIError,
)
from cost_killer.events import BudgetEvent, decode_pubsub_message
from cost_killer.override import OverrideDecision, OverrideGate, OverrideReason
from cost_killer.shutdown import (
    RetryPolicy,
    ShutdownExecutor,
    ShutdownOutcome,
    ShutdownTarget,
    exponential_backoff,
    linear_backoff,
)

__all__ = [
    "BudgetController",
    "BudgetEvent",
    "Classification",
    "ConfigError",
    "ControllerSettings",
    "CostKillerError",
    "DataError",
    "EventResult",
    "EventState",
    "EventStatus",
    "OverrideDecision",
    "OverrideGate",
    "OverrideNotFoundError",
    "OverrideReason",
    "OverrideStoreError",
    "RatioClass",
    "RetryPolicy",
    "ShutdownExecutor",
    "ShutdownOutcome",
    "ShutdownTarget",
    "TransientAPIError",
    "classify",
    "decode_pubsub_message",
    "exponential_backoff",
    "linear_backoff",
]

__version__ = "0.1.0"
