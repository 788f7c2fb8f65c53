"""
Token commands - SenteToken operations.

Commands:
- info:      Name, symbol, decimals and total supply
- balance:   Token balance of the wallet (or --account)
- allowance: How much a spender may move on the wallet's behalf
- can-claim: Whether the faucet can be claimed now
- transfer:  Send tokens
- approve:   Allow a spender to move tokens
- faucet:    Claim test tokens (once per 24 hours)

Reads are answered by simulation alone; writes run the full pipeline.
"""

from __future__ import annotations

from typing import Optional

import click

from ..contracts.token import SenteToken
from ..errors import SenteError
from .common import CliContext, amount_argument, fail, pass_cli, report_outcome, show_amount


def _token(obj: CliContext) -> SenteToken:
    return SenteToken(obj.pipeline, obj.registry)


@click.group()
def token() -> None:
    """SenteToken operations.

    \b
    Examples:
      sente token balance
      sente token transfer --to G... --amount 10
      sente token faucet
    """


@token.command()
@pass_cli
def info(obj: CliContext) -> None:
    """Show token metadata."""
    try:
        contract = _token(obj)
        session = obj.session
        name = contract.name(session)
        symbol = contract.symbol(session)
        decimals = contract.decimals(session)
        supply = contract.total_supply(session)
    except SenteError as exc:
        fail(exc)

    click.echo(f"=== {name} ({obj.network.display_name}) ===")
    click.echo()
    click.echo(click.style("  Contract: ", dim=True) + contract.address)
    click.echo(click.style("  Symbol:   ", dim=True) + symbol)
    click.echo(click.style("  Decimals: ", dim=True) + str(decimals))
    show_amount("Supply:", supply, decimals, symbol)
    click.echo()


@token.command()
@click.option("--account", default=None, help="Account to query (default: your wallet)")
@pass_cli
def balance(obj: CliContext, account: Optional[str]) -> None:
    """Show token balance."""
    try:
        contract = _token(obj)
        session = obj.session
        account = account or session.require_public_key()
        symbol = contract.symbol(session)
        decimals = contract.decimals(session)
        raw = contract.balance(session, account)
    except SenteError as exc:
        fail(exc)

    click.echo(f"=== {symbol} Balance ({obj.network.display_name}) ===")
    click.echo()
    click.echo(click.style("  Account:  ", dim=True) + account)
    show_amount("Balance:", raw, decimals, symbol)
    click.echo()


@token.command()
@click.option("--spender", required=True, help="Spender address (G... or C...)")
@click.option("--owner", default=None, help="Owner address (default: your wallet)")
@pass_cli
def allowance(obj: CliContext, spender: str, owner: Optional[str]) -> None:
    """Show how much SPENDER may transfer from OWNER."""
    try:
        contract = _token(obj)
        session = obj.session
        symbol = contract.symbol(session)
        decimals = contract.decimals(session)
        raw = contract.allowance(session, spender, owner)
    except SenteError as exc:
        fail(exc)

    show_amount("Allowance:", raw, decimals, symbol)


@token.command("can-claim")
@click.option("--account", default=None, help="Account to check (default: your wallet)")
@pass_cli
def can_claim(obj: CliContext, account: Optional[str]) -> None:
    """Check whether the faucet can be claimed."""
    try:
        ready = _token(obj).can_claim_faucet(obj.session, account)
    except SenteError as exc:
        fail(exc)

    if ready:
        click.secho("  Faucet available", fg="green")
    else:
        click.secho("  Faucet on cooldown (one claim per 24 hours)", fg="yellow")


@token.command()
@click.option("--to", "recipient", required=True, help="Recipient address (G...)")
@click.option("--amount", required=True, help="Amount in display units (e.g. 1.5)")
@pass_cli
def transfer(obj: CliContext, recipient: str, amount: str) -> None:
    """Transfer tokens from your wallet."""
    try:
        contract = _token(obj)
        session = obj.session
        symbol = contract.symbol(session)
        decimals = contract.decimals(session)
        raw = amount_argument(amount, decimals)

        click.echo(f"=== {symbol} Transfer ({obj.network.display_name}) ===")
        click.echo()
        click.echo(click.style("  From:   ", dim=True) + session.require_public_key())
        click.echo(click.style("  To:     ", dim=True) + recipient)
        click.echo(click.style("  Amount: ", dim=True) + f"{amount} {symbol} ({raw} raw)")
        click.echo()
        click.echo("  Waiting for signature...")

        outcome = contract.transfer(session, recipient, raw)
    except SenteError as exc:
        fail(exc)

    report_outcome(outcome, "Transfer successful!")


@token.command()
@click.option("--spender", required=True, help="Spender address (G... or C...)")
@click.option("--amount", required=True, help="Amount in display units")
@pass_cli
def approve(obj: CliContext, spender: str, amount: str) -> None:
    """Allow SPENDER to transfer up to AMOUNT of your tokens."""
    try:
        contract = _token(obj)
        session = obj.session
        raw = amount_argument(amount, contract.decimals(session))
        outcome = contract.approve(session, spender, raw)
    except SenteError as exc:
        fail(exc)

    report_outcome(outcome, "Approval set!")


@token.command()
@pass_cli
def faucet(obj: CliContext) -> None:
    """Claim test tokens from the faucet."""
    try:
        outcome = _token(obj).claim_faucet(obj.session)
    except SenteError as exc:
        fail(exc)

    report_outcome(outcome, "Faucet claimed!")
