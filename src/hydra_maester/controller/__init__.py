"""OAuth2Client reconciliation."""

from hydra_maester.controller.audit import ReconcileAuditLogger
from hydra_maester.controller.loop import Controller, ReconcileOutcome
from hydra_maester.controller.reconciler import (
    CLIENT_SECRET_KEY,
    OAuth2ClientReconciler,
    ReconcileError,
    Result,
    is_terminal,
)

__all__ = [
    "CLIENT_SECRET_KEY",
    "Controller",
    "OAuth2ClientReconciler",
    "ReconcileAuditLogger",
    "ReconcileError",
    "ReconcileOutcome",
    "Result",
    "is_terminal",
]
