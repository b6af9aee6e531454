"""Resource and registry models."""

from .client import (
    API_VERSION,
    KIND,
    GrantType,
    OAuth2Client,
    OAuth2ClientSpec,
    OAuth2ClientStatus,
    ObjectMeta,
    RegistrationState,
    ResourceKey,
    ResponseType,
    Secret,
)
from .hydra import OAuth2ClientJSON

__all__ = [
    "API_VERSION",
    "KIND",
    "GrantType",
    "OAuth2Client",
    "OAuth2ClientJSON",
    "OAuth2ClientSpec",
    "OAuth2ClientStatus",
    "ObjectMeta",
    "RegistrationState",
    "ResourceKey",
    "ResponseType",
    "Secret",
]
