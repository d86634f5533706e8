"""Workload Identity Labeler CLI (wil).

Operational helpers around the controller. All settings come from the same
environment variables the controller reads.

Usage:
    wil run              # Run the controller loop (same as the container entrypoint)
    wil once             # Run a single reconciliation tick and print a summary
    wil resolve NAME     # Look up the client id of one managed identity
"""

from __future__ import annotations

import asyncio
import json

import click
from azure.core.exceptions import AzureError

from . import __version__
from .config import Config, ConfigurationError
from .identities import IdentityResolutionError
from .kube import ClusterConfigError
from .logging_setup import setup_logging
from .main import build_catalog, build_reconciler, main
from .reconciler import ServiceAccountListError
from .security import SecretlessViolationError


def load_config() -> Config:
    """Load configuration from the environment.

    Raises:
        click.ClickException: If the configuration is invalid.
    """
    try:
        return Config.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__, prog_name="wil")
def cli() -> None:
    """Workload Identity Labeler CLI (wil).

    Binds labelled ServiceAccounts to Azure managed identities.

    \b
    Quick Start:
        wil resolve my-identity   # Check the controller can see an identity
        wil once                  # Reconcile once and exit
        wil run                   # Run continuously
    """
    pass


@cli.command()
def run() -> None:
    """Run the controller until interrupted."""
    raise SystemExit(asyncio.run(main()))


@cli.command()
def once() -> None:
    """Run one reconciliation tick and print the result as JSON."""
    setup_logging()
    config = load_config()

    try:
        reconciler = build_reconciler(config)
    except (ClusterConfigError, SecretlessViolationError, AzureError) as e:
        raise click.ClickException(str(e)) from e

    try:
        result = reconciler.reconcile_once()
    except ServiceAccountListError as e:
        raise click.ClickException(str(e)) from e

    click.echo(json.dumps(result.to_dict(), indent=2))
    if result.failures or result.impact_error:
        raise SystemExit(1)


@cli.command()
@click.argument("name")
def resolve(name: str) -> None:
    """Print the client id of the managed identity called NAME."""
    setup_logging()
    config = load_config()

    try:
        catalog = build_catalog(config)
        client_id = catalog.resolve(name)
    except (SecretlessViolationError, AzureError, IdentityResolutionError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    click.echo(client_id)


if __name__ == "__main__":
    cli()
