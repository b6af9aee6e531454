"""Reconciles declarative OAuth2Client resources against an ORY Hydra client registry."""

__version__ = "0.1.0"

from hydra_maester.controller import Controller, OAuth2ClientReconciler, Result
from hydra_maester.hydra import HydraAdminClient
from hydra_maester.models import OAuth2Client, ResourceKey

__all__ = [
    "Controller",
    "HydraAdminClient",
    "OAuth2Client",
    "OAuth2ClientReconciler",
    "ResourceKey",
    "Result",
]
