"""
Sente CLI

Command-line client for the Sente token and vault contracts on Stellar.

Every state-changing command runs the same pipeline: build, simulate,
sign, submit, then poll until the network reports a final status.

Commands:
  keygen    - Create a local signing key
  fund      - Fund an account on testnet
  pay       - Send XLM
  token     - SenteToken operations
  vault     - SenteVault operations
  invoke    - Call any contract function
  tx        - Look up a submitted transaction
  contracts - Show or edit contract addresses
  whoami    - Show current wallet address
  info      - Show system information
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import click

from .commands.common import CliContext, pass_cli
from .config import SENTE_ENV, NetworkConfig, load_env
from .errors import SenteError
from .registry import find_deployment_record
from .wallet.keys import get_public_key, load_secret_key


# ============ Constants ============

VERSION = "0.1.0"


# ============ Banner ============


def _print_banner(compact: bool = False) -> None:
    """Print the Sente CLI banner.

    Args:
        compact: If True, print a single-line banner (for subcommands).
    """
    if compact:
        click.echo(
            click.style("  ◆ ", fg="cyan")
            + click.style("S E N T E", fg="bright_white", bold=True)
            + click.style(f"  v{VERSION}", dim=True)
        )
        click.echo()
        return

    border = click.style("  ◆ ═══════════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()
    click.echo(
        click.style("            S E N T E", fg="bright_white", bold=True)
        + click.style(f"          v{VERSION}", dim=True)
    )
    click.secho("        ─── Soroban Token & Vault Client ───", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="sente")
@click.option("--network", "network_name", default=None, help="testnet or mainnet (env: SENTE_NETWORK)")
@click.option(
    "--signer-bridge",
    envvar="SENTE_SIGNER_BRIDGE",
    default=None,
    help="URL of an external wallet bridge; default signs with the local key",
)
@click.option(
    "--contracts",
    "contracts_path",
    envvar="SENTE_CONTRACTS",
    default=None,
    help="Deployment record (default: nearest config/contracts.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log pipeline stages")
@click.pass_context
def cli(
    ctx: click.Context,
    network_name: Optional[str],
    signer_bridge: Optional[str],
    contracts_path: Optional[str],
    verbose: bool,
) -> None:
    """Sente: Soroban token & vault client."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    load_env()

    if ctx.obj is None:
        ctx.obj = CliContext(network_name, signer_bridge, contracts_path)
    else:
        # Pre-built context (embedding, tests): only fill what it lacks
        ctx.obj.network_name = ctx.obj.network_name or network_name
        ctx.obj.signer_bridge = ctx.obj.signer_bridge or signer_bridge
        ctx.obj.contracts_path = ctx.obj.contracts_path or contracts_path
    ctx.call_on_close(ctx.obj.close)

    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .commands.contracts import contracts
from .commands.invoke import invoke
from .commands.token import token
from .commands.tx import tx
from .commands.vault import vault
from .commands.wallet import fund, keygen, pay

cli.add_command(keygen)
cli.add_command(fund)
cli.add_command(pay)
cli.add_command(token)
cli.add_command(vault)
cli.add_command(invoke)
cli.add_command(tx)
cli.add_command(contracts)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show current wallet identity."""
    try:
        secret = load_secret_key()
        click.echo(f"Address: {get_public_key(secret)}")
    except ValueError:
        click.echo("No wallet found.")
        click.echo("Run 'sente keygen' to create one.")
        sys.exit(1)


# ============ Info ============


def _print_rpc_status(obj: CliContext, network: NetworkConfig) -> None:
    label = click.style("  RPC status:  ", dim=True)
    try:
        served = obj.endpoints.execution.get_network()
        latest = obj.endpoints.execution.get_latest_ledger()
    except SenteError as exc:
        click.echo(label + click.style(f"unreachable ({exc})", fg="red"))
        return

    passphrase = served.get("passphrase")
    if passphrase != network.network_passphrase:
        click.echo(label + click.style(f"wrong network: serves '{passphrase}'", fg="red"))
        return
    click.echo(label + click.style(f"online, ledger {latest.get('sequence', '?')}", fg="green"))


@cli.command()
@click.option("--check", is_flag=True, help="Also ask the Soroban RPC which network it serves")
@pass_cli
def info(obj: CliContext, check: bool) -> None:
    """Show system information."""
    _print_banner()

    # ── Status ──
    click.secho("  Status ─────────────────────────────────", fg="cyan")
    click.echo()

    try:
        address = get_public_key(load_secret_key())
        click.echo(
            click.style("  Address:     ", dim=True)
            + click.style(address, fg="bright_white")
        )
    except ValueError:
        click.echo(
            click.style("  Address:     ", dim=True)
            + click.style("not initialized", fg="yellow")
            + click.style("  (run: sente keygen)", dim=True)
        )

    try:
        network = obj.network
        click.echo(click.style("  Network:     ", dim=True) + click.style(network.display_name, fg="bright_white"))
        click.echo(click.style("  Horizon:     ", dim=True) + network.horizon_url)
        click.echo(click.style("  Soroban RPC: ", dim=True) + network.soroban_rpc_url)
        if check:
            _print_rpc_status(obj, network)
    except SenteError as exc:
        click.echo(click.style("  Network:     ", dim=True) + click.style(str(exc), fg="red"))

    signer_text = obj.signer_bridge or f"local key ({SENTE_ENV})"
    click.echo(click.style("  Signer:      ", dim=True) + signer_text)

    try:
        record_text = click.style(str(find_deployment_record()), fg="bright_white")
    except SenteError:
        record_text = click.style("not found", fg="yellow") + click.style(
            "  (run: sente contracts register)", dim=True
        )
    click.echo(click.style("  Contracts:   ", dim=True) + record_text)

    click.echo()

    # ── Commands ──
    click.secho("  Commands ───────────────────────────────", fg="cyan")
    click.echo()

    commands = [
        ("keygen   ", "Create a local signing key"),
        ("fund     ", "Fund an account on testnet"),
        ("pay      ", "Send XLM"),
        ("token    ", "SenteToken balance, transfer, faucet"),
        ("vault    ", "SenteVault deposit, savings, withdraw"),
        ("invoke   ", "Call any contract function"),
        ("tx       ", "Look up a submitted transaction"),
        ("contracts", "Show or edit contract addresses"),
        ("whoami   ", "Show current wallet address"),
    ]
    for cmd, desc in commands:
        click.echo(
            click.style("  ", dim=True)
            + click.style(cmd, fg="bright_white", bold=True)
            + click.style("  ◇  ", fg="cyan")
            + click.style(desc, dim=True)
        )

    click.echo()


# ============ Entry Points ============


def main() -> None:
    """Sente CLI entry point."""
    # Ensure UTF-8 output on Windows (for Unicode box-drawing / symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass  # Fallback: old Python or non-tty
    cli()


if __name__ == "__main__":
    main()
