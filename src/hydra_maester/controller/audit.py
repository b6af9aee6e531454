"""Structured audit logging for reconciliation outcomes."""

from __future__ import annotations

from typing import Any

import structlog

from hydra_maester.models import ResourceKey

# Outcomes of a successful reconciliation pass.
OUTCOME_DELETED = "deleted"
OUTCOME_IN_SYNC = "in_sync"
OUTCOME_REGISTERED = "registered"
OUTCOME_REREGISTERED = "re_registered"


class ReconcileAuditLogger:
    """Emits one structured event per reconciliation."""

    def __init__(self, enabled: bool = True, logger: Any = None):
        self._enabled = enabled
        self._logger = logger or structlog.get_logger("audit")

    def log_result(
        self,
        key: ResourceKey,
        outcome: str,
        client_id: str | None = None,
    ) -> None:
        if not self._enabled:
            return

        log_data: dict[str, Any] = {
            "event": "reconcile_result",
            "namespace": key.namespace,
            "name": key.name,
            "outcome": outcome,
        }
        if client_id:
            log_data["client_id"] = client_id

        self._logger.info(**log_data)

    def log_error(
        self,
        key: ResourceKey,
        error: BaseException,
        orphaned_client_id: str | None = None,
    ) -> None:
        if not self._enabled:
            return

        log_data: dict[str, Any] = {
            "event": "reconcile_error",
            "namespace": key.namespace,
            "name": key.name,
            "error_type": type(error).__name__,
            "error": str(error),
        }
        if orphaned_client_id:
            log_data["orphaned_client_id"] = orphaned_client_id

        self._logger.error(**log_data)
