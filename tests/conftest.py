"""
Shared fixtures: in-memory ledger and execution endpoints, real signers.

The fakes speak the same shapes as Horizon and Soroban RPC (dicts with
base64 XDR fields), so everything above the endpoint layer runs unchanged.
"""

from __future__ import annotations

from typing import Any, Optional

import pytest
from stellar_sdk import Keypair, SorobanDataBuilder, StrKey, TransactionEnvelope
from stellar_sdk import xdr as stellar_xdr
from stellar_sdk.operation import InvokeHostFunction

from sente.config import TESTNET, PipelineSettings
from sente.errors import AccountNotFound, SubmissionError, SubmissionFailure
from sente.ledger.codec import ContractValue, to_xdr
from sente.ledger.models import AccountSnapshot
from sente.ledger.pipeline import InvocationPipeline
from sente.ledger.poller import FinalityPoller
from sente.ledger.rpc import EndpointClient
from sente.registry import ContractRegistry, DeploymentRecord
from sente.wallet.session import WalletSession
from sente.wallet.signer import KeypairSigner, SignerGateway

TOKEN_ID = StrKey.encode_contract(bytes([1] * 32))
VAULT_ID = StrKey.encode_contract(bytes([2] * 32))
RESOURCE_FEE = 5_000


def bad_seq_result_xdr() -> str:
    return stellar_xdr.TransactionResult(
        fee_charged=stellar_xdr.Int64(0),
        result=stellar_xdr.TransactionResultResult(code=stellar_xdr.TransactionResultCode.txBAD_SEQ),
        ext=stellar_xdr.TransactionResultExt(0),
    ).to_xdr()


def soroban_data_xdr(resource_fee: int = RESOURCE_FEE) -> str:
    return SorobanDataBuilder().set_resource_fee(resource_fee).build().to_xdr()


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeLedger:
    """Horizon stand-in: accounts with sequence numbers."""

    def __init__(self, passphrase: str = TESTNET.network_passphrase) -> None:
        self.passphrase = passphrase
        self.accounts: dict[str, int] = {}
        self.loads = 0
        self.submitted: list[str] = []

    def add_account(self, account_id: str, sequence: int = 1_000) -> None:
        self.accounts[account_id] = sequence

    def load_account(self, account_id: str) -> AccountSnapshot:
        self.loads += 1
        if account_id not in self.accounts:
            raise AccountNotFound(account_id)
        return AccountSnapshot(account_id, self.accounts[account_id])

    def consume_sequence(self, envelope_xdr: str) -> bool:
        """Apply the envelope's sequence number; False if it is stale."""
        tx = TransactionEnvelope.from_xdr(envelope_xdr, self.passphrase).transaction
        source = tx.source.account_id
        if tx.sequence != self.accounts.get(source, -1) + 1:
            return False
        self.accounts[source] = tx.sequence
        return True

    def submit_raw_transaction(self, envelope_xdr: str) -> dict[str, Any]:
        self.submitted.append(envelope_xdr)
        envelope = TransactionEnvelope.from_xdr(envelope_xdr, self.passphrase)
        if not self.consume_sequence(envelope_xdr):
            raise SubmissionError(
                SubmissionFailure.DUPLICATE_SEQUENCE,
                "Transaction rejected by ledger: tx_bad_seq",
                result_code="tx_bad_seq",
            )
        return {"hash": envelope.hash_hex(), "successful": True, "ledger": 7}


class FakeExecution:
    """Soroban RPC stand-in.

    ``returns`` maps a contract function name to the value its simulation
    (and its successful execution) returns.  ``reverts`` maps a function
    name to the diagnostic its simulation fails with.
    """

    def __init__(self, ledger: FakeLedger) -> None:
        self.ledger = ledger
        self.returns: dict[str, ContractValue] = {}
        self.reverts: dict[str, str] = {}
        self.simulated: list[str] = []
        self.sent: list[str] = []
        self.polled: list[str] = []
        self.status_streams: dict[str, list[str]] = {}
        self._results: dict[str, Optional[ContractValue]] = {}

    def _function_name(self, envelope_xdr: str) -> str:
        op = TransactionEnvelope.from_xdr(envelope_xdr, self.ledger.passphrase).transaction.operations[0]
        assert isinstance(op, InvokeHostFunction)
        return op.host_function.invoke_contract.function_name.sc_symbol.decode()

    def simulate_transaction(self, envelope_xdr: str) -> dict[str, Any]:
        self.simulated.append(envelope_xdr)
        function = self._function_name(envelope_xdr)
        if function in self.reverts:
            return {
                "error": f"HostError: Error(WasmVm, InvalidAction) \"{self.reverts[function]}\"",
                "events": [],
                "latestLedger": 100,
            }
        result: dict[str, Any] = {"auth": []}
        if function in self.returns:
            result["xdr"] = to_xdr(self.returns[function])
        return {
            "transactionData": soroban_data_xdr(),
            "minResourceFee": str(RESOURCE_FEE),
            "results": [result],
            "cost": {"cpuInsns": "1000", "memBytes": "2000"},
            "latestLedger": 100,
        }

    def send_transaction(self, envelope_xdr: str) -> dict[str, Any]:
        self.sent.append(envelope_xdr)
        envelope = TransactionEnvelope.from_xdr(envelope_xdr, self.ledger.passphrase)
        tx_hash = envelope.hash_hex()
        if not self.ledger.consume_sequence(envelope_xdr):
            return {"status": "ERROR", "hash": tx_hash, "errorResultXdr": bad_seq_result_xdr(), "latestLedger": 100}
        self._results[tx_hash] = self.returns.get(self._function_name(envelope_xdr))
        return {"status": "PENDING", "hash": tx_hash, "latestLedger": 100}

    def get_transaction(self, tx_hash: str) -> dict[str, Any]:
        self.polled.append(tx_hash)
        stream = self.status_streams.get(tx_hash)
        status = stream.pop(0) if stream else ("SUCCESS" if tx_hash in self._results else "NOT_FOUND")
        payload: dict[str, Any] = {"status": status, "latestLedger": 101}
        if status == "SUCCESS":
            payload["ledger"] = 101
            value = self._results.get(tx_hash)
            if value is not None:
                payload["returnValue"] = to_xdr(value)
        return payload

    def get_network(self) -> dict[str, Any]:
        return {"passphrase": self.ledger.passphrase, "protocolVersion": 22}

    def get_latest_ledger(self) -> dict[str, Any]:
        return {"id": "ab" * 32, "sequence": 101, "protocolVersion": 22}


@pytest.fixture()
def keypair() -> Keypair:
    return Keypair.random()


@pytest.fixture()
def ledger(keypair: Keypair) -> FakeLedger:
    fake = FakeLedger()
    fake.add_account(keypair.public_key)
    return fake


@pytest.fixture()
def execution(ledger: FakeLedger) -> FakeExecution:
    return FakeExecution(ledger)


@pytest.fixture()
def endpoints(ledger: FakeLedger, execution: FakeExecution) -> EndpointClient:
    return EndpointClient(ledger, execution)


@pytest.fixture()
def signer(keypair: Keypair) -> KeypairSigner:
    return KeypairSigner(keypair.secret, TESTNET.network_passphrase)


@pytest.fixture()
def gateway(signer: KeypairSigner) -> SignerGateway:
    return SignerGateway(signer)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def pipeline(endpoints: EndpointClient, gateway: SignerGateway, clock: FakeClock) -> InvocationPipeline:
    settings = PipelineSettings()
    poller = FinalityPoller(
        endpoints.execution,
        poll_interval_ms=settings.poll_interval_ms,
        max_wait_ms=settings.max_wait_ms,
        sleep=clock.sleep,
        clock=clock.monotonic,
    )
    return InvocationPipeline(endpoints, gateway, TESTNET, settings=settings, poller=poller)


@pytest.fixture()
def session(signer: KeypairSigner) -> WalletSession:
    wallet = WalletSession(signer, TESTNET, funder=lambda url, account: None)
    wallet.connect()
    return wallet


@pytest.fixture()
def registry() -> ContractRegistry:
    return ContractRegistry(
        DeploymentRecord(network="testnet", contracts={"SenteToken": TOKEN_ID, "SenteVault": VAULT_ID})
    )
