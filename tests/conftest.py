"""Pytest configuration and fixtures."""

import json

import httpx
import pytest

from hydra_maester.controller import OAuth2ClientReconciler, ReconcileAuditLogger
from hydra_maester.hydra import HydraAdminClient
from hydra_maester.models import OAuth2Client, ResourceKey
from hydra_maester.store import InMemoryStore

BASE_URL = "http://hydra.test:4445/clients"


class FakeStructLogger:
    def __init__(self):
        self.calls = []

    def info(self, **kwargs):
        self.calls.append(("info", kwargs))

    def error(self, **kwargs):
        self.calls.append(("error", kwargs))


class FakeHydra:
    """In-memory stand-in for the Hydra client registry, served over MockTransport."""

    def __init__(self):
        self.clients: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: int | None = None
        self._counter = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={})

        if request.method == "POST":
            self._counter += 1
            client_id = f"client-{self._counter}"
            record = {**json.loads(request.content), "client_id": client_id}
            self.clients[client_id] = record
            return httpx.Response(
                201, json={**record, "client_secret": f"secret-{self._counter}"}
            )

        client_id = request.url.path.rsplit("/", 1)[-1]
        if request.method == "GET":
            if client_id in self.clients:
                return httpx.Response(200, json=self.clients[client_id])
            return httpx.Response(404, json={"error": "Not Found"})
        if request.method == "DELETE":
            if self.clients.pop(client_id, None) is not None:
                return httpx.Response(204)
            return httpx.Response(404, json={"error": "Not Found"})
        return httpx.Response(405)

    def calls(self, method: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method]


@pytest.fixture
def fake_hydra() -> FakeHydra:
    return FakeHydra()


@pytest.fixture
def make_hydra():
    """Build a HydraAdminClient whose requests are answered by ``handler``."""

    def _make(handler) -> HydraAdminClient:
        return HydraAdminClient(BASE_URL, timeout=5.0, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def demo_resource() -> OAuth2Client:
    return OAuth2Client.model_validate(
        {
            "metadata": {"name": "demo", "namespace": "default"},
            "spec": {"grantTypes": ["client_credentials"], "scope": "read write"},
        }
    )


@pytest.fixture
def demo_key() -> ResourceKey:
    return ResourceKey(namespace="default", name="demo")


@pytest.fixture
def store(demo_resource) -> InMemoryStore:
    store = InMemoryStore()
    store.put(demo_resource)
    return store


@pytest.fixture
def audit_logger() -> FakeStructLogger:
    return FakeStructLogger()


@pytest.fixture
def make_reconciler(store, audit_logger):
    def _make(hydra: HydraAdminClient, resources=None, secrets=None) -> OAuth2ClientReconciler:
        return OAuth2ClientReconciler(
            hydra,
            resources or store,
            secrets or store,
            audit=ReconcileAuditLogger(logger=audit_logger),
        )

    return _make
