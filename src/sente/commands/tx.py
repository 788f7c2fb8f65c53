"""
Tx commands - look up a submitted transaction by hash.

The follow-up after a poll timeout: the transaction may still have landed.
"""

from __future__ import annotations

from typing import Optional

import click

from ..errors import SenteError
from ..ledger.models import TxStatus
from .common import CliContext, fail, pass_cli, report_outcome

_STATUS_COLOURS = {
    TxStatus.SUCCESS: "green",
    TxStatus.FAILED: "red",
    TxStatus.PENDING: "yellow",
    TxStatus.NOT_FOUND: "yellow",
}


@click.group()
def tx() -> None:
    """Inspect submitted transactions."""


@tx.command()
@click.argument("tx_hash")
@click.option("--wait", is_flag=True, help="Poll until the transaction is final")
@click.option("--max-wait-ms", default=None, type=click.IntRange(min=1), help="Polling deadline in ms")
@pass_cli
def status(obj: CliContext, tx_hash: str, wait: bool, max_wait_ms: Optional[int]) -> None:
    """Show the status of TX_HASH."""
    try:
        if wait:
            outcome = obj.pipeline.poller.await_outcome(tx_hash, max_wait_ms=max_wait_ms)
        else:
            observed = obj.pipeline.status(tx_hash)
    except SenteError as exc:
        fail(exc)

    if wait:
        report_outcome(outcome, "Transaction final: SUCCESS")
        if outcome.value is not None:
            click.echo(f"  Result: {outcome.value!r}")
        return

    click.echo(click.style("  Hash:   ", dim=True) + tx_hash)
    click.echo(
        click.style("  Status: ", dim=True)
        + click.style(observed.status.value, fg=_STATUS_COLOURS[observed.status], bold=True)
    )
    if observed.ledger is not None:
        click.echo(click.style("  Ledger: ", dim=True) + str(observed.ledger))
    if observed.result_code:
        click.echo(click.style("  Result: ", dim=True) + observed.result_code)
    if observed.return_value is not None:
        click.echo(click.style("  Return: ", dim=True) + repr(observed.return_value))
