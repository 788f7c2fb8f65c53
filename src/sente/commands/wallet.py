"""
Wallet commands - local key, testnet funding and native payments.

Commands:
- keygen: Create the local signing key (~/.sente/.env)
- fund:   Fund an account on testnet via friendbot
- pay:    Send XLM
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..errors import ConfigurationError, EndpointError, SenteError
from ..ledger.builder import STROOPS_PER_LUMEN
from ..ledger.rpc import fund_testnet_account
from ..wallet.keys import generate_keypair, get_public_key, load_secret_key, save_secret_key
from .common import CliContext, amount_argument, fail, pass_cli, report_outcome

LUMEN_DECIMALS = len(str(STROOPS_PER_LUMEN)) - 1


def _friendbot(obj: CliContext, account: str) -> None:
    friendbot_url = obj.network.friendbot_url
    if not friendbot_url:
        raise ConfigurationError(f"Friendbot is only available on testnet, not {obj.network.name}")
    fund_testnet_account(friendbot_url, account)


@click.command()
@click.option("--force", is_flag=True, help="Replace an existing key")
@click.option("--fund/--no-fund", default=False, help="Fund the new account via friendbot (testnet)")
@pass_cli
def keygen(obj: CliContext, force: bool, fund: bool) -> None:
    """Create a Stellar signing key for this machine."""
    try:
        existing = load_secret_key()
    except ValueError:
        existing = None

    if existing and not force:
        click.echo(click.style("  Key already exists: ", dim=True) + get_public_key(existing))
        click.echo(click.style("  Use --force to replace it.", dim=True))
        return

    secret, public_key = generate_keypair()
    env_path = save_secret_key(secret)
    click.secho("  Key created", fg="green", bold=True)
    click.echo(click.style("  Address: ", dim=True) + public_key)
    click.echo(click.style("  Saved:   ", dim=True) + str(env_path))

    if fund:
        try:
            _friendbot(obj, public_key)
        except SenteError as exc:
            click.secho(f"  Funding failed: {exc}", fg="yellow")
        else:
            click.secho("  Funded via friendbot", fg="green")


@click.command()
@click.option("--account", default=None, help="Account to fund (default: your wallet)")
@pass_cli
def fund(obj: CliContext, account: Optional[str]) -> None:
    """Fund an account on testnet via friendbot."""
    try:
        account = account or obj.session.require_public_key()
        _friendbot(obj, account)
    except EndpointError as exc:
        click.secho(f"  Account might already be funded or friendbot failed: {exc}", fg="yellow")
        sys.exit(exc.exit_code)
    except SenteError as exc:
        fail(exc)

    click.secho(f"  Funded {account}", fg="green")


@click.command()
@click.option("--to", "recipient", required=True, help="Destination account (G...)")
@click.option("--amount", required=True, help="Amount of XLM (e.g. 2.5)")
@click.option("--memo", default=None, help="Text memo (max 28 bytes)")
@pass_cli
def pay(obj: CliContext, recipient: str, amount: str, memo: Optional[str]) -> None:
    """Send XLM to another account."""
    stroops = amount_argument(amount, LUMEN_DECIMALS)
    try:
        source = obj.session.require_public_key()
        click.echo(f"  {source} -> {recipient}: {amount} XLM")
        outcome = obj.pipeline.pay(source, recipient, stroops, memo=memo)
    except SenteError as exc:
        fail(exc)

    report_outcome(outcome, "Payment sent!")
