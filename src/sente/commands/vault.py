"""
Vault commands - SenteVault operations.

Commands:
- balance:          Spendable, savings and total balance
- unlock:           Ledger at which savings unlock
- deposit:          Move tokens into the vault
- withdraw:         Move tokens out of the vault
- transfer:         Vault-to-vault transfer
- save:             Lock tokens in savings for 1-365 days
- withdraw-savings: Withdraw unlocked savings
"""

from __future__ import annotations

from typing import Optional

import click

from ..contracts.token import SenteToken
from ..contracts.vault import MAX_LOCK_DAYS, MIN_LOCK_DAYS, SenteVault
from ..errors import SenteError
from .common import CliContext, amount_argument, fail, pass_cli, report_outcome, show_amount


def _vault(obj: CliContext) -> SenteVault:
    return SenteVault(obj.pipeline, obj.registry)


def _token_meta(obj: CliContext) -> tuple[str, int]:
    """(symbol, decimals) of the vault's token."""
    token = SenteToken(obj.pipeline, obj.registry)
    session = obj.session
    return token.symbol(session), token.decimals(session)


@click.group()
def vault() -> None:
    """SenteVault operations.

    \b
    Examples:
      sente vault balance
      sente vault deposit --amount 25
      sente vault save --amount 10 --days 30
    """


@vault.command()
@click.option("--account", default=None, help="Account to query (default: your wallet)")
@pass_cli
def balance(obj: CliContext, account: Optional[str]) -> None:
    """Show vault balances."""
    try:
        contract = _vault(obj)
        session = obj.session
        account = account or session.require_public_key()
        symbol, decimals = _token_meta(obj)
        spendable = contract.balance(session, account)
        savings = contract.savings_balance(session, account)
        total = contract.total_balance(session, account)
    except SenteError as exc:
        fail(exc)

    click.echo(f"=== Vault ({obj.network.display_name}) ===")
    click.echo()
    click.echo(click.style("  Account:  ", dim=True) + account)
    show_amount("Vault:", spendable, decimals, symbol)
    show_amount("Savings:", savings, decimals, symbol)
    show_amount("Total:", total, decimals, symbol)
    click.echo()


@vault.command()
@click.option("--account", default=None, help="Account to query (default: your wallet)")
@pass_cli
def unlock(obj: CliContext, account: Optional[str]) -> None:
    """Show when savings unlock."""
    try:
        unlock_ledger = _vault(obj).unlock_time(obj.session, account)
    except SenteError as exc:
        fail(exc)

    if unlock_ledger == 0:
        click.echo("  No savings locked.")
    else:
        click.echo(click.style("  Unlocks at ledger: ", dim=True) + str(unlock_ledger))


@vault.command()
@click.option("--amount", required=True, help="Amount in display units")
@pass_cli
def deposit(obj: CliContext, amount: str) -> None:
    """Deposit tokens into the vault."""
    try:
        _, decimals = _token_meta(obj)
        outcome = _vault(obj).deposit(obj.session, amount_argument(amount, decimals))
    except SenteError as exc:
        fail(exc)

    report_outcome(outcome, "Deposit successful!")


@vault.command()
@click.option("--amount", required=True, help="Amount in display units")
@pass_cli
def withdraw(obj: CliContext, amount: str) -> None:
    """Withdraw tokens from the vault."""
    try:
        _, decimals = _token_meta(obj)
        outcome = _vault(obj).withdraw(obj.session, amount_argument(amount, decimals))
    except SenteError as exc:
        fail(exc)

    report_outcome(outcome, "Withdrawal successful!")


@vault.command()
@click.option("--to", "recipient", required=True, help="Recipient address (G...)")
@click.option("--amount", required=True, help="Amount in display units")
@pass_cli
def transfer(obj: CliContext, recipient: str, amount: str) -> None:
    """Transfer vault balance to another account."""
    try:
        _, decimals = _token_meta(obj)
        outcome = _vault(obj).transfer(obj.session, recipient, amount_argument(amount, decimals))
    except SenteError as exc:
        fail(exc)

    report_outcome(outcome, "Transfer successful!")


@vault.command()
@click.option("--amount", required=True, help="Amount in display units")
@click.option(
    "--days",
    "lock_days",
    required=True,
    type=click.IntRange(MIN_LOCK_DAYS, MAX_LOCK_DAYS),
    help="Lock duration in days (1-365)",
)
@pass_cli
def save(obj: CliContext, amount: str, lock_days: int) -> None:
    """Lock tokens in savings."""
    try:
        _, decimals = _token_meta(obj)
        outcome = _vault(obj).save_to_vault(obj.session, amount_argument(amount, decimals), lock_days)
    except SenteError as exc:
        fail(exc)

    report_outcome(outcome, f"Saved for {lock_days} days!")


@vault.command("withdraw-savings")
@click.option("--amount", required=True, help="Amount in display units")
@pass_cli
def withdraw_savings(obj: CliContext, amount: str) -> None:
    """Withdraw unlocked savings back to the vault balance."""
    try:
        _, decimals = _token_meta(obj)
        outcome = _vault(obj).withdraw_from_vault(obj.session, amount_argument(amount, decimals))
    except SenteError as exc:
        fail(exc)

    report_outcome(outcome, "Savings withdrawn!")
