"""Store interfaces for resources and credential secrets."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hydra_maester.models import OAuth2Client, ResourceKey, Secret


class StoreError(Exception):
    """Base exception for store failures."""


class ResourceNotFoundError(StoreError):
    """Object does not exist."""

    def __init__(self, kind: str, key: ResourceKey):
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key


class AlreadyExistsError(StoreError):
    """Object with the same identity already exists."""

    def __init__(self, kind: str, key: ResourceKey):
        super().__init__(f"{kind} {key} already exists")
        self.kind = kind
        self.key = key


class ConflictError(StoreError):
    """Update was based on a stale resourceVersion."""

    def __init__(self, key: ResourceKey, expected: str | None, actual: str | None):
        super().__init__(
            f"OAuth2Client {key} was modified concurrently "
            f"(resourceVersion {expected!r}, stored {actual!r})"
        )
        self.key = key
        self.expected = expected
        self.actual = actual


@runtime_checkable
class ResourceStore(Protocol):
    """Versioned store of OAuth2Client resources."""

    async def get(self, key: ResourceKey) -> OAuth2Client:
        """Return the resource or raise ResourceNotFoundError."""
        ...

    async def list_keys(self) -> list[ResourceKey]:
        ...

    async def update_status(self, resource: OAuth2Client) -> OAuth2Client:
        """Persist ``resource.status`` only.

        Raises ConflictError when ``resource.metadata.resource_version`` is
        stale and ResourceNotFoundError when the resource is gone.
        """
        ...


@runtime_checkable
class SecretStore(Protocol):
    """Store of credential secrets keyed by namespace/name."""

    async def create_secret(self, secret: Secret) -> None:
        """Create a secret or raise AlreadyExistsError."""
        ...

    async def replace_secret(self, secret: Secret) -> None:
        """Create a secret or overwrite an existing one."""
        ...

    async def get_secret(self, key: ResourceKey) -> Secret:
        ...
