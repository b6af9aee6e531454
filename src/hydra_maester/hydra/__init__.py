"""Hydra client registry adapter."""

from hydra_maester.hydra.client import (
    HydraAdminClient,
    HydraConflictError,
    HydraError,
    HydraUnexpectedStatusError,
)

__all__ = [
    "HydraAdminClient",
    "HydraConflictError",
    "HydraError",
    "HydraUnexpectedStatusError",
]
