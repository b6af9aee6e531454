"""Tests for the hydra-maester CLI."""

import httpx
import pytest
import yaml
from typer.testing import CliRunner

from hydra_maester.cli import commands
from hydra_maester.cli.main import app
from hydra_maester.config import Settings
from hydra_maester.hydra import HydraAdminClient

MANIFESTS = """\
apiVersion: hydra.ory.sh/v1alpha1
kind: OAuth2Client
metadata:
  name: demo
  namespace: default
spec:
  grantTypes: [client_credentials]
  scope: read write
"""

runner = CliRunner()


@pytest.fixture
def cli_hydra(monkeypatch, fake_hydra):
    """Route CLI traffic to the fake registry and disable retry sleeps."""
    used = {}

    def _client(settings):
        used["registry_url"] = settings.registry_url
        return HydraAdminClient(
            settings.registry_url, transport=httpx.MockTransport(fake_hydra.handler)
        )

    monkeypatch.setattr(commands, "_hydra_client", _client)
    monkeypatch.setattr(commands, "default_settings", Settings(max_retries=0))
    return used


@pytest.fixture
def manifests(tmp_path):
    path = tmp_path / "oauth2clients.yaml"
    path.write_text(MANIFESTS)
    return path


def test_reconcile_registers_and_writes_back(cli_hydra, fake_hydra, manifests, tmp_path):
    secrets = tmp_path / "secrets.yaml"

    result = runner.invoke(
        app,
        ["clients", "reconcile", str(manifests), "--secrets-file", str(secrets), "-u", "http://hydra-admin"],
    )

    assert result.exit_code == 0, result.output
    assert "ok default/demo" in result.output
    assert cli_hydra["registry_url"] == "http://hydra-admin:4445/clients"

    doc = yaml.safe_load(manifests.read_text())
    assert doc["status"] == {"secret": "demo", "clientID": "client-1"}
    secret = yaml.safe_load(secrets.read_text())
    assert secret["metadata"]["name"] == "demo"

    again = runner.invoke(app, ["clients", "reconcile", str(manifests), "--secrets-file", str(secrets)])
    assert again.exit_code == 0, again.output
    assert len(fake_hydra.calls("POST")) == 1


def test_reconcile_failure_exits_non_zero(cli_hydra, fake_hydra, manifests, tmp_path):
    fake_hydra.fail_with = 500

    result = runner.invoke(
        app, ["clients", "reconcile", str(manifests), "--secrets-file", str(tmp_path / "s.yaml")]
    )

    assert result.exit_code == 1
    assert "unexpected status code" in result.output
    assert "status" not in yaml.safe_load(manifests.read_text())


def test_reconcile_warns_about_schema_violations(cli_hydra, tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(MANIFESTS.replace("client_credentials", "password"))

    result = runner.invoke(
        app, ["clients", "reconcile", str(path), "--secrets-file", str(tmp_path / "s.yaml")]
    )

    assert "unsupported grant type: 'password'" in result.output


def test_get_client(cli_hydra, fake_hydra):
    fake_hydra.clients["abc"] = {"client_id": "abc", "client_name": "demo", "grant_types": []}

    result = runner.invoke(app, ["clients", "get", "abc"])

    assert result.exit_code == 0, result.output
    assert '"client_name": "demo"' in result.output


def test_get_missing_client(cli_hydra):
    result = runner.invoke(app, ["clients", "get", "nope"])

    assert result.exit_code == 1


def test_delete_client(cli_hydra, fake_hydra):
    fake_hydra.clients["abc"] = {"client_id": "abc"}

    result = runner.invoke(app, ["clients", "delete", "abc"])
    assert result.exit_code == 0, result.output
    assert "Deleted client: abc" in result.output

    result = runner.invoke(app, ["clients", "delete", "abc"])
    assert result.exit_code == 0
    assert "already absent" in result.output


def test_delete_client_error(cli_hydra, fake_hydra):
    fake_hydra.fail_with = 500

    result = runner.invoke(app, ["clients", "delete", "abc"])

    assert result.exit_code == 1


@pytest.fixture
def unreachable_hydra(monkeypatch):
    def _refuse(request):
        raise httpx.ConnectError("All connection attempts failed", request=request)

    def _client(settings):
        return HydraAdminClient(settings.registry_url, transport=httpx.MockTransport(_refuse))

    monkeypatch.setattr(commands, "_hydra_client", _client)
    monkeypatch.setattr(commands, "default_settings", Settings(max_retries=0))


@pytest.mark.parametrize("command", ["get", "delete"])
def test_unreachable_hydra_exits_cleanly(unreachable_hydra, command):
    result = runner.invoke(app, ["clients", command, "abc"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "All connection attempts failed" in result.output


def test_reconcile_with_unreachable_hydra_reports_failure(unreachable_hydra, manifests, tmp_path):
    result = runner.invoke(
        app, ["clients", "reconcile", str(manifests), "--secrets-file", str(tmp_path / "s.yaml")]
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "All connection attempts failed" in result.output


def test_reconcile_manifest_without_name(cli_hydra, tmp_path):
    path = tmp_path / "nameless.yaml"
    path.write_text(MANIFESTS.replace("  name: demo\n", ""))

    result = runner.invoke(
        app, ["clients", "reconcile", str(path), "--secrets-file", str(tmp_path / "s.yaml")]
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "metadata.name" in result.output
