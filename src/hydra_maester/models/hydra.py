"""Hydra client registry wire representation."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OAuth2ClientJSON(BaseModel):
    """An OAuth2 client as exchanged with the Hydra admin API.

    ``client_secret`` is only ever present in create responses.
    """

    model_config = ConfigDict(extra="ignore")

    client_id: str | None = None
    client_name: str = ""
    client_secret: str | None = None
    scope: str = ""
    grant_types: list[str] = Field(default_factory=list)
    response_types: list[str] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize for a request body, omitting unset optional fields."""
        payload = self.model_dump(exclude_none=True)
        if not payload.get("response_types"):
            payload.pop("response_types", None)
        return payload
