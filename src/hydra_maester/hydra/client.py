"""Hydra admin API client.

Wraps the client registry endpoints of the Hydra admin REST API:
- GET    {base}/{id}   look up a registered client
- POST   {base}        register a new client
- DELETE {base}/{id}   remove a client

Outcomes are classified purely by HTTP status code. There is no retry here;
failures are raised to the caller, which re-invokes later.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from hydra_maester.config import Settings
from hydra_maester.models.hydra import OAuth2ClientJSON

logger = logging.getLogger(__name__)


class HydraError(Exception):
    """Base exception for Hydra admin API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        method: str | None = None,
        url: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.url = url


class HydraConflictError(HydraError):
    """Requested client ID already exists."""

    pass


class HydraUnexpectedStatusError(HydraError):
    """Response status did not match any expected outcome."""

    pass


class HydraAdminClient:
    """Async client for the Hydra client registry."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "HydraAdminClient":
        return cls(settings.registry_url, timeout=settings.timeout, transport=transport)

    async def __aenter__(self) -> "HydraAdminClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def base_url(self) -> str:
        return self._base_url

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    def url_for(self, relative_path: str = "") -> str:
        """Join the registry base endpoint with a relative path segment."""
        if not relative_path:
            return self._base_url
        return f"{self._base_url}/{quote(relative_path, safe='')}"

    def build_request(
        self,
        method: str,
        relative_path: str = "",
        body: OAuth2ClientJSON | None = None,
    ) -> httpx.Request:
        """Build a request; Content-Type is only set when a body is sent."""
        headers = {"Accept": "application/json"}
        content = None
        if body is not None:
            content = json.dumps(body.to_payload()).encode("utf-8")
            headers["Content-Type"] = "application/json"

        return httpx.Request(
            method,
            self.url_for(relative_path),
            headers=headers,
            content=content,
            extensions={"timeout": httpx.Timeout(self._timeout).as_dict()},
        )

    async def _send(self, request: httpx.Request) -> httpx.Response:
        if self._client is None:
            raise HydraError("HydraAdminClient used outside of 'async with'")
        logger.debug("%s %s", request.method, request.url)
        return await self._client.send(request)

    def _decode(
        self,
        request: httpx.Request,
        response: httpx.Response,
        success_status: int,
    ) -> OAuth2ClientJSON | None:
        """Decode the body into a client record.

        Undecodable bodies only matter on the success status; any other
        status yields None and callers must not use the value.
        """
        try:
            data: Any = response.json()
            return OAuth2ClientJSON.model_validate(data)
        except (ValueError, ValidationError) as e:
            if response.status_code != success_status:
                return None
            raise HydraError(
                f"{request.method} {request.url} http request returned an invalid body: {e}",
                status_code=response.status_code,
                method=request.method,
                url=str(request.url),
            ) from e

    @staticmethod
    def _unexpected(request: httpx.Request, response: httpx.Response) -> HydraUnexpectedStatusError:
        status = f"{response.status_code} {response.reason_phrase}".strip()
        return HydraUnexpectedStatusError(
            f"{request.method} {request.url} http request returned unexpected status code {status}",
            status_code=response.status_code,
            method=request.method,
            url=str(request.url),
        )

    # -------------------------------------------------------------------------
    # Clients
    # -------------------------------------------------------------------------

    async def get_client(self, client_id: str) -> tuple[OAuth2ClientJSON | None, bool]:
        """Look up a client by ID.

        Returns (record, True) when registered and (None, False) when Hydra
        reports 404. Any other status raises HydraUnexpectedStatusError.
        """
        request = self.build_request("GET", client_id)
        response = await self._send(request)
        record = self._decode(request, response, success_status=200)

        if response.status_code == 200:
            return record, True
        if response.status_code == 404:
            logger.debug("Client not found in Hydra: %s", client_id)
            return None, False
        raise self._unexpected(request, response)

    async def create_client(self, desired: OAuth2ClientJSON) -> OAuth2ClientJSON:
        """Register a new client.

        Returns the created record including the Hydra-generated client_id
        and client_secret.
        """
        request = self.build_request("POST", "", desired)
        response = await self._send(request)
        record = self._decode(request, response, success_status=201)

        if response.status_code == 201:
            logger.info("Created Hydra client: %s (id=%s)", desired.client_name, record.client_id)
            return record
        if response.status_code == 409:
            raise HydraConflictError(
                f"{request.method} {request.url} http request failed: requested ID already exists",
                status_code=409,
                method=request.method,
                url=str(request.url),
            )
        raise self._unexpected(request, response)

    async def delete_client(self, client_id: str) -> bool:
        """Delete a client.

        Returns True when deleted and False when it was already absent.
        """
        request = self.build_request("DELETE", client_id)
        response = await self._send(request)

        if response.status_code == 204:
            logger.info("Deleted Hydra client: %s", client_id)
            return True
        if response.status_code == 404:
            logger.debug("Client already absent from Hydra: %s", client_id)
            return False
        raise self._unexpected(request, response)
