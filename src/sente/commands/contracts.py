"""
Contracts commands - the deployment record (contract name -> address).
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from stellar_sdk import StrKey

from ..errors import ConfigurationError, SenteError
from ..registry import DeploymentRecord, find_deployment_record
from .common import CliContext, fail, pass_cli


@click.group()
def contracts() -> None:
    """Show or edit the contract address registry."""


@contracts.command()
@pass_cli
def show(obj: CliContext) -> None:
    """Show deployed contract addresses."""
    try:
        path = Path(obj.contracts_path) if obj.contracts_path else find_deployment_record()
        record = DeploymentRecord.from_path(path)
    except SenteError as exc:
        fail(exc)

    click.echo(click.style("  Record:   ", dim=True) + str(path))
    click.echo(click.style("  Network:  ", dim=True) + record.network)
    if record.deployer:
        click.echo(click.style("  Deployer: ", dim=True) + record.deployer)
    if record.timestamp:
        click.echo(click.style("  Deployed: ", dim=True) + record.timestamp)
    click.echo()
    for name, address in sorted(record.contracts.items()):
        click.echo(
            click.style(f"  {name:<12}", fg="bright_white", bold=True)
            + click.style(" ◇ ", fg="cyan")
            + address
        )


@contracts.command()
@click.argument("name")
@click.argument("address")
@click.option(
    "--path",
    "record_path",
    default="config/contracts.json",
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Deployment record to create or update",
)
@click.option("--deployer", default=None, help="Deployer account (G...)")
@pass_cli
def register(obj: CliContext, name: str, address: str, record_path: Path, deployer: Optional[str]) -> None:
    """Record ADDRESS as the deployment of contract NAME."""
    if not StrKey.is_valid_contract(address):
        fail(ConfigurationError(f"Invalid contract address: {address}"))

    try:
        if record_path.exists():
            record = DeploymentRecord.from_path(record_path)
            if record.network != obj.network.name:
                raise ConfigurationError(
                    f"{record_path} is a {record.network} record, but the active network is {obj.network.name}"
                )
        else:
            record = DeploymentRecord(network=obj.network.name, contracts={})
        record = record.with_contract(name, address)
        if deployer:
            record = replace(record, deployer=deployer)
        record.write(record_path)
    except SenteError as exc:
        fail(exc)

    click.secho(f"  Registered {name} -> {address}", fg="green")
    click.echo(click.style("  Saved to: ", dim=True) + str(record_path))
