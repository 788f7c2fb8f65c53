"""
Shared CLI state: the network, endpoints, signer and pipeline for one run.

Everything is built lazily so that commands which only read local config
(``whoami``, ``contracts show``) never open a connection.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import NoReturn, Optional

import click

from ..config import NetworkConfig, PipelineSettings, get_network
from ..errors import ConfigurationError, SenteError
from ..ledger.models import OutcomeStatus, TransactionOutcome
from ..ledger.pipeline import InvocationPipeline
from ..ledger.rpc import EndpointClient
from ..registry import ContractRegistry
from ..utils import format_amount, parse_amount
from ..wallet.keys import load_secret_key
from ..wallet.session import WalletSession
from ..wallet.signer import BridgeSigner, KeypairSigner, Signer, SignerGateway


class CliContext:
    """Lazily built collaborators; any of them may be passed in pre-built."""

    def __init__(
        self,
        network_name: Optional[str] = None,
        signer_bridge: Optional[str] = None,
        contracts_path: Optional[str] = None,
        endpoints: Optional[EndpointClient] = None,
        signer: Optional[Signer] = None,
        registry: Optional[ContractRegistry] = None,
        settings: Optional[PipelineSettings] = None,
    ) -> None:
        self.network_name = network_name
        self.signer_bridge = signer_bridge
        self.contracts_path = contracts_path
        self.settings = settings
        self._network: Optional[NetworkConfig] = None
        self._endpoints = endpoints
        self._signer = signer
        self._gateway: Optional[SignerGateway] = None
        self._session: Optional[WalletSession] = None
        self._pipeline: Optional[InvocationPipeline] = None
        self._registry = registry

    @property
    def network(self) -> NetworkConfig:
        if self._network is None:
            self._network = get_network(self.network_name)
        return self._network

    @property
    def endpoints(self) -> EndpointClient:
        if self._endpoints is None:
            self._endpoints = EndpointClient.from_network(self.network)
        return self._endpoints

    @property
    def signer(self) -> Signer:
        if self._signer is None:
            if self.signer_bridge:
                self._signer = BridgeSigner(self.signer_bridge)
            else:
                try:
                    secret = load_secret_key()
                except ValueError as exc:
                    raise ConfigurationError(str(exc)) from exc
                self._signer = KeypairSigner(secret, self.network.network_passphrase)
        return self._signer

    @property
    def session(self) -> WalletSession:
        """Connected wallet session (connects on first use)."""
        if self._session is None:
            session = WalletSession(self.signer, self.network)
            session.connect()
            self._session = session
        return self._session

    @property
    def pipeline(self) -> InvocationPipeline:
        if self._pipeline is None:
            self._gateway = SignerGateway(self.signer)
            self._pipeline = InvocationPipeline(
                self.endpoints,
                self._gateway,
                self.network,
                settings=self.settings or PipelineSettings.from_env(),
            )
        return self._pipeline

    @property
    def registry(self) -> ContractRegistry:
        if self._registry is None:
            path = None
            if self.contracts_path:
                path = Path(self.contracts_path)
            self._registry = ContractRegistry.load(path, network=self.network.name)
        return self._registry

    def close(self) -> None:
        if self._endpoints is not None:
            self._endpoints.close()
        close = getattr(self._signer, "close", None)
        if close is not None:
            close()


pass_cli = click.make_pass_decorator(CliContext, ensure=True)


def fail(exc: Exception) -> NoReturn:
    """Print an error and exit with the error's exit code."""
    click.secho(f"ERROR: {exc}", fg="red")
    sys.exit(getattr(exc, "exit_code", 1))


def amount_argument(value: str, decimals: int) -> int:
    """Convert a decimal amount typed by the user into smallest units."""
    try:
        raw = parse_amount(value, decimals)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--amount") from exc
    if raw <= 0:
        raise click.BadParameter("Amount must be positive", param_hint="--amount")
    return raw


def show_amount(label: str, raw: int, decimals: int, symbol: str) -> None:
    click.echo(
        click.style(f"  {label:<10}", dim=True)
        + click.style(f"{format_amount(raw, decimals)} {symbol}", fg="bright_white")
    )


def report_outcome(outcome: TransactionOutcome, success_message: str) -> None:
    """Print a write outcome; exit non-zero unless it succeeded."""
    click.echo()
    if outcome.ok:
        click.secho(f"  {success_message}", fg="green", bold=True)
        if outcome.tx_hash:
            click.echo(click.style("  TX: ", dim=True) + outcome.tx_hash)
        click.echo()
        return

    colour = "yellow" if outcome.status in (OutcomeStatus.TIMED_OUT, OutcomeStatus.CANCELLED) else "red"
    click.secho(f"  {outcome.status.value.upper().replace('_', ' ')}: {outcome.diagnostic}", fg=colour)
    if outcome.tx_hash:
        click.echo(click.style("  TX: ", dim=True) + outcome.tx_hash)
    click.echo()
    exit_code = outcome.error.exit_code if isinstance(outcome.error, SenteError) else 1
    sys.exit(exit_code)
