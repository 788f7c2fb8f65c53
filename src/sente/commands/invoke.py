"""
Invoke - call any function on any contract.

Arguments are typed on the command line as TYPE:VALUE, for example
``--arg address:G... --arg i128:1000000 --arg u32:30``.
"""

from __future__ import annotations

from typing import Optional

import click
from stellar_sdk import StrKey

from ..errors import CodecError, CodecFailure, SenteError
from ..ledger.codec import ContractValue, ScType, encode
from ..ledger.models import ContractCall
from .common import CliContext, fail, pass_cli, report_outcome

_BOOL_WORDS = {"true": True, "1": True, "yes": True, "false": False, "0": False, "no": False}


def parse_typed_arg(raw: str) -> ContractValue:
    """Turn 'i128:5' into a ContractValue."""
    type_name, sep, text = raw.partition(":")
    if not sep and type_name.lower() != ScType.VOID.value:
        raise click.BadParameter(f"expected TYPE:VALUE, got {raw!r}", param_hint="--arg")

    declared = type_name.lower()
    if declared in (ScType.U32.value, ScType.U64.value, ScType.I128.value):
        try:
            value: object = int(text)
        except ValueError:
            raise click.BadParameter(f"{text!r} is not an integer", param_hint="--arg") from None
    elif declared == ScType.BOOL.value:
        if text.lower() not in _BOOL_WORDS:
            raise click.BadParameter(f"{text!r} is not a boolean", param_hint="--arg")
        value = _BOOL_WORDS[text.lower()]
    elif declared == ScType.VOID.value:
        value = None
    else:
        value = text
    return encode(value, declared)


def _resolve_contract(obj: CliContext, contract: str) -> str:
    if StrKey.is_valid_contract(contract):
        return contract
    return obj.registry.address_of(contract)


@click.command()
@click.option("--contract", required=True, help="Contract address (C...) or registry name (e.g. SenteToken)")
@click.option("--function", "func_name", required=True, help="Function name to call")
@click.option("--arg", "raw_args", multiple=True, help="Typed argument TYPE:VALUE (repeatable)")
@click.option("--read", "read_only", is_flag=True, help="Simulate only; do not sign or submit")
@click.option("--memo", default=None, help="Text memo (max 28 bytes)")
@pass_cli
def invoke(
    obj: CliContext,
    contract: str,
    func_name: str,
    raw_args: tuple[str, ...],
    read_only: bool,
    memo: Optional[str],
) -> None:
    """
    Invoke a contract function.

    State-changing calls are simulated, signed, submitted and polled to
    finality.  With --read the simulated return value is printed and
    nothing is submitted.
    """
    click.echo("=== Sente Invoke ===")
    click.echo()

    try:
        args = tuple(parse_typed_arg(raw) for raw in raw_args)
        call = ContractCall(
            contract_id=_resolve_contract(obj, contract),
            function_name=func_name,
            args=args,
        )
        source = obj.session.require_public_key()
    except CodecError as exc:
        if exc.reason is CodecFailure.UNSUPPORTED_TYPE:
            click.echo(f"Supported types: {', '.join(t.value for t in ScType)}")
        fail(exc)
    except SenteError as exc:
        fail(exc)

    click.echo(f"  Source:   {source}")
    click.echo(f"  Contract: {call.contract_id}")
    click.echo(f"  Function: {func_name}")
    click.echo(f"  Args:     {list(args)}")
    click.echo()

    try:
        if read_only:
            outcome = obj.pipeline.read(source, call)
        else:
            outcome = obj.pipeline.invoke(source, call, memo=memo)
    except SenteError as exc:
        fail(exc)

    if outcome.ok:
        click.secho("SUCCESS", fg="green")
        if outcome.value is not None:
            click.echo(f"  Result: {outcome.value!r}")
        if outcome.tx_hash:
            click.echo(f"  TX: {outcome.tx_hash}")
        return
    report_outcome(outcome, "")
