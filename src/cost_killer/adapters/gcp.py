"""Google Cloud adapters: Compute Engine stop and Firestore override flag.

The underlying Google clients are created lazily so that importing this
module never opens a connection; tests inject their own client objects.
"""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Any

from google.api_core import exceptions as api_exceptions

from cost_killer.errors import OverrideNotFoundError, OverrideStoreError, TransientAPIError
from cost_killer.shutdown import ShutdownTarget

logger = logging.getLogger(__name__)


def _error_code(exc: api_exceptions.GoogleAPIError) -> str | int | None:
    grpc_code = getattr(exc, "grpc_status_code", None)
    if grpc_code is not None:
        return grpc_code.name
    return getattr(exc, "code", None)


class ComputeEngineClient:
    """Stops Compute Engine instances through ``compute_v1.InstancesClient``."""

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            from google.cloud import compute_v1

            self._client = compute_v1.InstancesClient()
        return self._client

    def stop_instance(self, target: ShutdownTarget, timeout: float) -> str:
        """Request a stop and wait, at most ``timeout`` seconds, for the operation."""
        try:
            operation = self.client.stop(
                project=target.project_id,
                zone=target.zone,
                instance=target.instance_id,
                timeout=timeout,
            )
            operation.result(timeout=timeout)
        except api_exceptions.GoogleAPIError as exc:
            raise TransientAPIError(str(exc), code=_error_code(exc)) from exc
        except concurrent.futures.TimeoutError as exc:
            raise TransientAPIError(
                f"Stop operation for {target} did not finish within {timeout:.0f}s",
                code="DEADLINE_EXCEEDED",
            ) from exc
        # result() raises the operation's error, so reaching here means done
        return "DONE"


class FirestoreOverrideStore:
    """Reads the override flag from a Firestore document.

    The key is the document path (``collection/document``); the flag is the
    document's ``enabled`` field and only a boolean ``true`` counts.
    """

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            from google.cloud import firestore

            self._client = firestore.Client()
        return self._client

    def read_flag(self, key: str, timeout: float) -> bool:
        try:
            snapshot = self.client.document(key).get(retry=None, timeout=timeout)
        except api_exceptions.NotFound as exc:
            raise OverrideNotFoundError(str(exc), code=_error_code(exc)) from exc
        except api_exceptions.GoogleAPIError as exc:
            raise OverrideStoreError(str(exc), code=_error_code(exc)) from exc
        except concurrent.futures.TimeoutError as exc:
            raise OverrideStoreError(
                f"Reading {key} timed out after {timeout:.0f}s", code="DEADLINE_EXCEEDED"
            ) from exc

        if not snapshot.exists:
            raise OverrideNotFoundError(f"Override document {key} not found", code="NOT_FOUND")
        data = snapshot.to_dict() or {}
        enabled = data.get("enabled") is True
        if enabled:
            logger.info("Override detected at %s.", key)
        return enabled
