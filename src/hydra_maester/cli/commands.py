"""OAuth2 client CLI commands.

Commands:
    hydra-maester clients reconcile <oauth2clients.yaml>
    hydra-maester clients run <oauth2clients.yaml>
    hydra-maester clients get <client-id>
    hydra-maester clients delete <client-id>
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError

from hydra_maester.config import Settings, settings as default_settings
from hydra_maester.controller import (
    Controller,
    OAuth2ClientReconciler,
    ReconcileOutcome,
)
from hydra_maester.hydra import HydraAdminClient, HydraError
from hydra_maester.logs import configure_logging
from hydra_maester.models import ResourceKey
from hydra_maester.store import ManifestStore, StoreError

logger = logging.getLogger(__name__)

clients_app = typer.Typer(
    name="clients",
    help="Reconcile OAuth2Client resources against Hydra",
    add_completion=False,
)

HydraUrlOption = Annotated[
    Optional[str],
    typer.Option("--hydra-url", "-u", help="Hydra admin URL"),
]
HydraPortOption = Annotated[
    Optional[int],
    typer.Option("--hydra-port", "-p", help="Hydra admin port"),
]
EndpointOption = Annotated[
    Optional[str],
    typer.Option("--endpoint", help="Client registry path, e.g. /clients"),
]
SecretsFileOption = Annotated[
    Optional[Path],
    typer.Option("--secrets-file", "-s", help="Output file for client secrets"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable verbose output"),
]


def _build_settings(
    hydra_url: str | None = None,
    hydra_port: int | None = None,
    endpoint: str | None = None,
    secrets_file: Path | None = None,
    manifests_file: Path | None = None,
) -> Settings:
    """Build settings from environment and CLI overrides."""
    return default_settings.with_overrides(
        hydra_url=hydra_url,
        hydra_port=hydra_port,
        endpoint=endpoint,
        secrets_file=secrets_file,
        manifests_file=manifests_file,
    )


def _hydra_client(settings: Settings) -> HydraAdminClient:
    return HydraAdminClient.from_settings(settings)


def _warn_schema_violations(store: ManifestStore) -> None:
    async def _collect() -> dict[ResourceKey, list[str]]:
        found = {}
        for key in await store.list_keys():
            problems = (await store.get(key)).spec.schema_violations()
            if problems:
                found[key] = problems
        return found

    for key, problems in asyncio.run(_collect()).items():
        for problem in problems:
            typer.secho(f"Warning: {key}: {problem}", fg=typer.colors.YELLOW)


def _print_outcomes(outcomes: dict[ResourceKey, ReconcileOutcome]) -> None:
    for key, outcome in outcomes.items():
        if outcome.success:
            typer.echo(f"  ok {key}")
        else:
            typer.secho(f"  ! {key}: {outcome.error}", fg=typer.colors.RED)


@clients_app.command("reconcile")
def reconcile(
    manifests: Path = typer.Argument(
        help="Path to OAuth2Client manifests YAML file",
        exists=True,
        dir_okay=False,
        readable=True,
        default=default_settings.manifests_file,
    ),
    hydra_url: HydraUrlOption = None,
    hydra_port: HydraPortOption = None,
    endpoint: EndpointOption = None,
    secrets_file: SecretsFileOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Run one reconciliation pass over every OAuth2Client in a manifests file.

    Unregistered clients are created in Hydra, their secrets written to the
    secrets file and their status written back to the manifests file. Running
    it again is a no-op for clients that are still registered.

    Example:
        hydra-maester clients reconcile oauth2clients.yaml --hydra-url http://hydra-admin
    """
    configure_logging("DEBUG" if verbose else None)
    settings = _build_settings(hydra_url, hydra_port, endpoint, secrets_file, manifests)
    store = ManifestStore(settings.manifests_file, settings.secrets_file)

    typer.echo(f"Reconciling {manifests} against {settings.registry_url}")
    try:
        _warn_schema_violations(store)
        outcomes = asyncio.run(_async_reconcile(settings, store))
    except ValidationError as e:
        typer.secho(f"Invalid manifest: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except (HydraError, StoreError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except Exception as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        if verbose:
            import traceback

            traceback.print_exc()
        raise typer.Exit(1)

    _print_outcomes(outcomes)
    if not all(o.success for o in outcomes.values()):
        raise typer.Exit(1)


async def _async_reconcile(
    settings: Settings,
    store: ManifestStore,
) -> dict[ResourceKey, ReconcileOutcome]:
    async with _hydra_client(settings) as hydra:
        reconciler = OAuth2ClientReconciler(hydra, store, store)
        controller = Controller.from_settings(reconciler, store, settings)
        return await controller.run_once()


@clients_app.command("run")
def run(
    manifests: Path = typer.Argument(
        help="Path to OAuth2Client manifests YAML file",
        exists=True,
        dir_okay=False,
        readable=True,
        default=default_settings.manifests_file,
    ),
    hydra_url: HydraUrlOption = None,
    hydra_port: HydraPortOption = None,
    endpoint: EndpointOption = None,
    secrets_file: SecretsFileOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Continuously reconcile a manifests file until interrupted."""
    configure_logging("DEBUG" if verbose else None)
    settings = _build_settings(hydra_url, hydra_port, endpoint, secrets_file, manifests)
    store = ManifestStore(settings.manifests_file, settings.secrets_file)

    typer.echo(
        f"Watching {manifests} against {settings.registry_url} "
        f"(resync every {settings.resync_interval:g}s)"
    )
    try:
        asyncio.run(_async_run(settings, store))
    except (HydraError, StoreError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


async def _async_run(settings: Settings, store: ManifestStore) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    async with _hydra_client(settings) as hydra:
        reconciler = OAuth2ClientReconciler(hydra, store, store)
        controller = Controller.from_settings(reconciler, store, settings)
        await controller.run_forever(stop)


@clients_app.command("get")
def get(
    client_id: str = typer.Argument(help="Hydra client ID"),
    hydra_url: HydraUrlOption = None,
    hydra_port: HydraPortOption = None,
    endpoint: EndpointOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show a client registered in Hydra."""
    configure_logging("DEBUG" if verbose else None)
    settings = _build_settings(hydra_url, hydra_port, endpoint)

    async def _get():
        async with _hydra_client(settings) as hydra:
            return await hydra.get_client(client_id)

    try:
        record, found = asyncio.run(_get())
    except HydraError as e:
        typer.secho(f"Hydra error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except Exception as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        if verbose:
            import traceback

            traceback.print_exc()
        raise typer.Exit(1)

    if not found:
        typer.secho(f"Client not found: {client_id}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(record.model_dump(exclude_none=True), indent=2))


@clients_app.command("delete")
def delete(
    client_id: str = typer.Argument(help="Hydra client ID"),
    hydra_url: HydraUrlOption = None,
    hydra_port: HydraPortOption = None,
    endpoint: EndpointOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Delete a client from Hydra, e.g. one orphaned by a failed registration."""
    configure_logging("DEBUG" if verbose else None)
    settings = _build_settings(hydra_url, hydra_port, endpoint)

    async def _delete():
        async with _hydra_client(settings) as hydra:
            return await hydra.delete_client(client_id)

    try:
        deleted = asyncio.run(_delete())
    except HydraError as e:
        typer.secho(f"Hydra error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except Exception as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        if verbose:
            import traceback

            traceback.print_exc()
        raise typer.Exit(1)

    if deleted:
        typer.echo(f"Deleted client: {client_id}")
    else:
        typer.echo(f"Client already absent: {client_id}")
