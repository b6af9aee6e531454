"""OAuth2Client reconciliation.

Each resource is in one of two states:

- unregistered: ``status.clientID`` is empty
- registered:   ``status.clientID`` is set and Hydra knows the client

A pass loads the resource, confirms a recorded client still exists in Hydra
and, when it does not, registers the client, stores its secret and records
the new client ID in the resource status. Registered resources are left
alone; spec changes after registration are not propagated to Hydra. When a
recorded client has vanished from Hydra the resource is registered again and
its credential secret is overwritten with the new secret.

Errors are raised to the caller, which is expected to retry with backoff
unless ``is_terminal`` says retrying cannot help. Nothing is rolled back: if
the secret or status write fails after Hydra created the client, that client
is orphaned and the next pass creates another one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hydra_maester.controller.audit import (
    OUTCOME_DELETED,
    OUTCOME_IN_SYNC,
    OUTCOME_REGISTERED,
    OUTCOME_REREGISTERED,
    ReconcileAuditLogger,
)
from hydra_maester.hydra import HydraAdminClient, HydraConflictError, HydraError
from hydra_maester.models import (
    OAuth2Client,
    OAuth2ClientStatus,
    ObjectMeta,
    RegistrationState,
    ResourceKey,
    Secret,
)
from hydra_maester.store import (
    AlreadyExistsError,
    ResourceNotFoundError,
    ResourceStore,
    SecretStore,
)

logger = logging.getLogger(__name__)

# Key under which the client secret is stored in the credential secret.
CLIENT_SECRET_KEY = "client_secret"


@dataclass(frozen=True)
class Result:
    """Outcome handed back to the scheduler.

    A Result means success, optionally asking to be invoked again. A raised
    exception means "retry after backoff" unless ``is_terminal`` says
    otherwise.
    """

    requeue: bool = False
    requeue_after: float | None = None


class ReconcileError(Exception):
    """A registration step failed after Hydra created the client.

    ``terminal`` errors will fail the same way on every retry, and every
    retry would register yet another client in Hydra.
    """

    def __init__(
        self,
        message: str,
        key: ResourceKey,
        orphaned_client_id: str | None = None,
        terminal: bool = False,
    ):
        super().__init__(message)
        self.key = key
        self.orphaned_client_id = orphaned_client_id
        self.terminal = terminal


def is_terminal(error: BaseException) -> bool:
    """Whether retrying the pass that raised ``error`` cannot succeed."""
    if isinstance(error, HydraConflictError):
        return True
    return isinstance(error, ReconcileError) and error.terminal


class OAuth2ClientReconciler:
    """Drives OAuth2Client resources from unregistered to registered."""

    def __init__(
        self,
        hydra: HydraAdminClient,
        resources: ResourceStore,
        secrets: SecretStore,
        audit: ReconcileAuditLogger | None = None,
    ):
        self._hydra = hydra
        self._resources = resources
        self._secrets = secrets
        self._audit = audit or ReconcileAuditLogger()

    async def reconcile(self, key: ResourceKey) -> Result:
        """Run one reconciliation pass for ``key``."""
        try:
            return await self._reconcile(key)
        except ReconcileError as e:
            self._audit.log_error(key, e, orphaned_client_id=e.orphaned_client_id)
            raise
        except Exception as e:
            self._audit.log_error(key, e)
            raise

    async def _reconcile(self, key: ResourceKey) -> Result:
        try:
            resource = await self._resources.get(key)
        except ResourceNotFoundError:
            logger.debug("OAuth2Client %s no longer exists", key)
            self._audit.log_result(key, OUTCOME_DELETED)
            return Result()

        outcome = OUTCOME_REGISTERED
        if resource.status.state is RegistrationState.REGISTERED:
            client_id = resource.status.client_id
            _, found = await self._hydra.get_client(client_id)
            if found:
                self._audit.log_result(key, OUTCOME_IN_SYNC, client_id=client_id)
                return Result()

            logger.warning(
                "Client %s recorded for %s is missing from Hydra, registering again",
                client_id,
                key,
            )
            outcome = OUTCOME_REREGISTERED

        created = await self._register(resource, replace_secret=outcome == OUTCOME_REREGISTERED)
        self._audit.log_result(key, outcome, client_id=created.status.client_id)
        return Result()

    async def _register(self, resource: OAuth2Client, replace_secret: bool = False) -> OAuth2Client:
        """Create the client in Hydra, store its secret and record its ID.

        With ``replace_secret`` the resource was registered before and Hydra
        lost the client. This is the one case where a recorded client ID is
        reassigned and an existing credential secret is overwritten; a
        first registration never touches a secret that already exists.
        """
        key = resource.key
        created = await self._hydra.create_client(resource.to_oauth2_client_json())
        if not created.client_id or not created.client_secret:
            raise HydraError(
                f"Hydra response for {key} is missing client_id or client_secret",
                status_code=201,
            )

        secret = Secret(
            metadata=ObjectMeta(name=resource.metadata.name, namespace=resource.metadata.namespace),
            data={CLIENT_SECRET_KEY: created.client_secret.encode("utf-8")},
        )
        try:
            if replace_secret:
                # The stored credential belongs to a client Hydra no longer knows.
                await self._secrets.replace_secret(secret)
            else:
                await self._secrets.create_secret(secret)
        except Exception as e:
            raise ReconcileError(
                f"failed to store secret for {key}: {e}",
                key=key,
                orphaned_client_id=created.client_id,
                terminal=isinstance(e, AlreadyExistsError),
            ) from e

        updated = resource.model_copy(
            update={
                "status": OAuth2ClientStatus(
                    secret=secret.metadata.name,
                    client_id=created.client_id,
                )
            }
        )
        try:
            stored = await self._resources.update_status(updated)
        except Exception as e:
            raise ReconcileError(
                f"failed to update status of {key}: {e}",
                key=key,
                orphaned_client_id=created.client_id,
            ) from e

        logger.info("Registered %s as Hydra client %s", key, created.client_id)
        return stored
