"""OAuth2Client resource models.

The resource mirrors the ``hydra.ory.sh/v1alpha1`` ``OAuth2Client`` kind:

    apiVersion: hydra.ory.sh/v1alpha1
    kind: OAuth2Client
    metadata:
      name: demo
      namespace: default
    spec:
      grantTypes: [client_credentials]
      responseTypes: [token]
      scope: "read write"
    status:
      secret: demo
      clientID: 0b4c7a9e-...

``status`` is owned by the reconciler; ``spec`` is only ever read.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from hydra_maester.models.hydra import OAuth2ClientJSON

API_VERSION = "hydra.ory.sh/v1alpha1"
KIND = "OAuth2Client"

SCOPE_PATTERN = re.compile(r"^([A-Za-z0-9.*]+\s?)+$")


class GrantType(str, Enum):
    """Grant types a client may be registered with."""

    CLIENT_CREDENTIALS = "client_credentials"
    AUTHORIZATION_CODE = "authorization_code"
    IMPLICIT = "implicit"
    REFRESH_TOKEN = "refresh_token"


class ResponseType(str, Enum):
    """Response types a client may use at the authorization endpoint."""

    ID_TOKEN = "id_token"
    CODE = "code"
    TOKEN = "token"


class RegistrationState(str, Enum):
    """Whether a resource has been registered with Hydra."""

    UNREGISTERED = "unregistered"
    REGISTERED = "registered"


@dataclass(frozen=True)
class ResourceKey:
    """Stable (namespace, name) identity of a resource and its secret."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def parse(cls, value: str, default_namespace: str = "default") -> "ResourceKey":
        """Parse ``namespace/name`` or a bare ``name``."""
        namespace, sep, name = value.partition("/")
        if not sep:
            return cls(namespace=default_namespace, name=namespace)
        return cls(namespace=namespace, name=name)


class _ResourceModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ObjectMeta(_ResourceModel):
    name: str
    namespace: str = "default"
    resource_version: str | None = Field(default=None, alias="resourceVersion")


class OAuth2ClientSpec(_ResourceModel):
    """Desired state of an OAuth2 client.

    Values are checked upstream; ``schema_violations`` reports anything that
    slipped through so callers can warn before the registry rejects it.
    """

    grant_types: list[str] = Field(default_factory=list, alias="grantTypes")
    response_types: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("responseTypes", "responseType", "response_types"),
        serialization_alias="responseTypes",
    )
    scope: str = ""

    def schema_violations(self) -> list[str]:
        """Return human-readable problems with grant types, response types and scope."""
        problems = []
        allowed_grants = {g.value for g in GrantType}
        for grant in self.grant_types:
            if grant not in allowed_grants:
                problems.append(f"unsupported grant type: {grant!r}")

        allowed_responses = {r.value for r in ResponseType}
        for response in self.response_types:
            if response not in allowed_responses:
                problems.append(f"unsupported response type: {response!r}")

        if not SCOPE_PATTERN.match(self.scope):
            problems.append(f"scope does not match {SCOPE_PATTERN.pattern}: {self.scope!r}")

        return problems


class OAuth2ClientStatus(_ResourceModel):
    """Observed state, written only by the reconciler."""

    secret: str | None = None
    client_id: str | None = Field(default=None, alias="clientID")

    @property
    def state(self) -> RegistrationState:
        if self.client_id:
            return RegistrationState.REGISTERED
        return RegistrationState.UNREGISTERED


class OAuth2Client(_ResourceModel):
    """Declarative OAuth2 client resource."""

    api_version: str = Field(default=API_VERSION, alias="apiVersion")
    kind: str = KIND
    metadata: ObjectMeta
    spec: OAuth2ClientSpec = Field(default_factory=OAuth2ClientSpec)
    status: OAuth2ClientStatus = Field(default_factory=OAuth2ClientStatus)

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(namespace=self.metadata.namespace, name=self.metadata.name)

    def to_oauth2_client_json(self) -> OAuth2ClientJSON:
        """Build the registry representation of this resource's desired state."""
        return OAuth2ClientJSON(
            client_name=self.metadata.name,
            grant_types=list(self.spec.grant_types),
            response_types=list(self.spec.response_types) or None,
            scope=self.spec.scope,
        )

    def to_manifest(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class Secret(_ResourceModel):
    """Credential secret holding opaque values under fixed keys."""

    api_version: str = Field(default="v1", alias="apiVersion")
    kind: str = "Secret"
    metadata: ObjectMeta
    data: dict[str, bytes] = Field(default_factory=dict)

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(namespace=self.metadata.namespace, name=self.metadata.name)
