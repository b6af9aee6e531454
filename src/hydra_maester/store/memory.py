"""In-memory resource and secret store."""

from __future__ import annotations

import logging

from hydra_maester.models import OAuth2Client, ResourceKey, Secret
from hydra_maester.store.base import AlreadyExistsError, ConflictError, ResourceNotFoundError

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Dict-backed store with optimistic concurrency on resourceVersion.

    Objects are copied on the way in and out, so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._resources: dict[ResourceKey, OAuth2Client] = {}
        self._secrets: dict[ResourceKey, Secret] = {}
        self._version = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    def put(self, resource: OAuth2Client) -> OAuth2Client:
        """Create or replace a resource (spec and status), bumping its version."""
        stored = resource.model_copy(deep=True)
        stored.metadata.resource_version = self._next_version()
        self._resources[stored.key] = stored
        return stored.model_copy(deep=True)

    def delete(self, key: ResourceKey) -> None:
        self._resources.pop(key, None)

    async def get(self, key: ResourceKey) -> OAuth2Client:
        try:
            return self._resources[key].model_copy(deep=True)
        except KeyError:
            raise ResourceNotFoundError("OAuth2Client", key) from None

    async def list_keys(self) -> list[ResourceKey]:
        return sorted(self._resources, key=str)

    async def update_status(self, resource: OAuth2Client) -> OAuth2Client:
        key = resource.key
        current = self._resources.get(key)
        if current is None:
            raise ResourceNotFoundError("OAuth2Client", key)

        if resource.metadata.resource_version != current.metadata.resource_version:
            raise ConflictError(
                key,
                expected=resource.metadata.resource_version,
                actual=current.metadata.resource_version,
            )

        updated = current.model_copy(deep=True)
        updated.status = resource.status.model_copy(deep=True)
        updated.metadata.resource_version = self._next_version()
        self._resources[key] = updated
        logger.debug("Updated status of %s (resourceVersion=%s)", key, updated.metadata.resource_version)
        return updated.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Secrets
    # -------------------------------------------------------------------------

    async def create_secret(self, secret: Secret) -> None:
        key = secret.key
        if key in self._secrets:
            raise AlreadyExistsError("Secret", key)
        self._secrets[key] = secret.model_copy(deep=True)

    async def replace_secret(self, secret: Secret) -> None:
        self._secrets[secret.key] = secret.model_copy(deep=True)

    async def get_secret(self, key: ResourceKey) -> Secret:
        try:
            return self._secrets[key].model_copy(deep=True)
        except KeyError:
            raise ResourceNotFoundError("Secret", key) from None
