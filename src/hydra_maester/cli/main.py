"""hydra-maester CLI - Main entrypoint.

Usage:
    hydra-maester clients reconcile oauth2clients.yaml
    hydra-maester clients delete <client-id>
"""

from __future__ import annotations

import typer

from hydra_maester.cli.commands import clients_app

app = typer.Typer(
    name="hydra-maester",
    help="Reconcile declarative OAuth2 clients with ORY Hydra",
    add_completion=True,
)

app.add_typer(clients_app, name="clients")


def create_app() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    create_app()
