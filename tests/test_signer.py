"""Signer gateway: one request at a time, reserved error codes, cancellation."""

from __future__ import annotations

import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest
from stellar_sdk import Keypair, StrKey, TransactionEnvelope

import sente
from sente.config import CONTRACT_FEE, TESTNET
from sente.errors import SignerError, SignerFailure
from sente.ledger.builder import build_transaction
from sente.ledger.codec import encode
from sente.ledger.models import AccountSnapshot, ContractCall, UnsignedTransaction
from sente.wallet.signer import (
    REQUEST_PENDING_CODE,
    USER_REJECTED_CODE,
    ExternalSignerError,
    KeypairSigner,
    SignerGateway,
    map_signer_exception,
)

TOKEN_ID = StrKey.encode_contract(bytes([1] * 32))


def _unsigned(keypair: Keypair, memo: str | None = None) -> UnsignedTransaction:
    call = ContractCall(TOKEN_ID, "claim_faucet", (encode(keypair.public_key, "address"),))
    return build_transaction(
        AccountSnapshot(keypair.public_key, 41),
        call,
        CONTRACT_FEE,
        TESTNET.network_passphrase,
        memo=memo,
    )


def _wait_idle(gateway: SignerGateway, limit: float = 5.0) -> None:
    deadline = time.monotonic() + limit
    while gateway.busy and time.monotonic() < deadline:
        time.sleep(0.01)


class ScriptedSigner:
    """Signer whose behaviour is set per test."""

    def __init__(self, keypair: Keypair, available: bool = True) -> None:
        self.keypair = keypair
        self.available = available
        self.started = threading.Event()
        self.release = threading.Event()
        self.block = False
        self.error: Exception | None = None
        self.respond = None
        self.calls = 0

    def is_available(self) -> bool:
        return self.available

    def request_access(self) -> str:
        return self.keypair.public_key

    def get_public_key(self) -> str:
        return self.keypair.public_key

    def get_network(self) -> str:
        return TESTNET.network_passphrase

    def sign(self, envelope_xdr: str, network_passphrase: str) -> str:
        self.calls += 1
        self.started.set()
        if self.block:
            self.release.wait(5)
        if self.error is not None:
            raise self.error
        if self.respond is not None:
            return self.respond(envelope_xdr)
        envelope = TransactionEnvelope.from_xdr(envelope_xdr, network_passphrase)
        envelope.sign(self.keypair)
        return envelope.to_xdr()


@pytest.fixture()
def scripted(keypair: Keypair) -> ScriptedSigner:
    return ScriptedSigner(keypair)


@pytest.fixture()
def scripted_gateway(scripted: ScriptedSigner):
    yield SignerGateway(scripted)
    scripted.release.set()


class TestSign:
    def test_keypair_signer(self, gateway: SignerGateway, keypair: Keypair) -> None:
        unsigned = _unsigned(keypair)
        signed = gateway.sign(unsigned)

        envelope = TransactionEnvelope.from_xdr(signed.envelope_xdr, TESTNET.network_passphrase)
        assert signed.tx_hash == unsigned.tx_hash
        assert signed.source == keypair.public_key
        assert signed.sequence == 42
        assert len(envelope.signatures) == 1
        assert not gateway.busy

    def test_sequential_requests_are_fine(self, gateway: SignerGateway, keypair: Keypair) -> None:
        gateway.sign(_unsigned(keypair, memo="one"))
        gateway.sign(_unsigned(keypair, memo="two"))

    def test_second_request_while_pending_is_busy(self, scripted, scripted_gateway, keypair) -> None:
        scripted.block = True
        results: list[object] = []
        worker = threading.Thread(target=lambda: results.append(scripted_gateway.sign(_unsigned(keypair))))
        worker.start()
        assert scripted.started.wait(5)

        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair, memo="second"))
        assert exc_info.value.reason is SignerFailure.BUSY
        assert exc_info.value.retryable

        scripted.release.set()
        worker.join(5)
        assert len(results) == 1
        assert scripted.calls == 1

    def test_user_rejected(self, scripted, scripted_gateway, keypair) -> None:
        scripted.error = ExternalSignerError(USER_REJECTED_CODE, "User declined access")
        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair))
        assert exc_info.value.reason is SignerFailure.USER_REJECTED
        assert not exc_info.value.retryable
        _wait_idle(scripted_gateway)
        assert not scripted_gateway.busy

    def test_request_pending_code_is_busy(self, scripted, scripted_gateway, keypair) -> None:
        scripted.error = ExternalSignerError(REQUEST_PENDING_CODE, "")
        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair))
        assert exc_info.value.reason is SignerFailure.BUSY

    def test_unexpected_signer_crash_is_unavailable(self, scripted, scripted_gateway, keypair) -> None:
        scripted.error = RuntimeError("extension crashed")
        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair))
        assert exc_info.value.reason is SignerFailure.UNAVAILABLE

    def test_unavailable_signer_is_never_asked(self, scripted, scripted_gateway, keypair) -> None:
        scripted.available = False
        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair))
        assert exc_info.value.reason is SignerFailure.UNAVAILABLE
        assert scripted.calls == 0
        assert not scripted_gateway.busy


class TestCancel:
    def test_cancel_event(self, scripted, scripted_gateway, keypair) -> None:
        scripted.block = True
        cancel = threading.Event()
        threading.Timer(0.05, cancel.set).start()

        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair), cancel=cancel)
        assert exc_info.value.reason is SignerFailure.CANCELLED

        # The abandoned request still holds the slot until the signer answers
        assert scripted_gateway.busy
        scripted.release.set()
        _wait_idle(scripted_gateway)
        assert not scripted_gateway.busy

    def test_approval_timeout(self, scripted, scripted_gateway, keypair) -> None:
        scripted.block = True
        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair), timeout=0.05)
        assert exc_info.value.reason is SignerFailure.CANCELLED

    def test_abandoned_request_does_not_hold_up_exit(self) -> None:
        script = textwrap.dedent(
            """
            import threading, time
            from stellar_sdk import Keypair, StrKey
            from sente.config import CONTRACT_FEE, TESTNET
            from sente.errors import SignerError
            from sente.ledger.builder import build_transaction
            from sente.ledger.codec import encode
            from sente.ledger.models import AccountSnapshot, ContractCall
            from sente.wallet.signer import SignerGateway

            class WalletThatNeverAnswers:
                def is_available(self):
                    return True

                def sign(self, envelope_xdr, network_passphrase):
                    time.sleep(60)
                    return envelope_xdr

            keypair = Keypair.random()
            call = ContractCall(
                StrKey.encode_contract(bytes([1] * 32)),
                "claim_faucet",
                (encode(keypair.public_key, "address"),),
            )
            unsigned = build_transaction(
                AccountSnapshot(keypair.public_key, 1), call, CONTRACT_FEE, TESTNET.network_passphrase
            )
            cancel = threading.Event()
            cancel.set()
            try:
                SignerGateway(WalletThatNeverAnswers()).sign(unsigned, cancel=cancel)
            except SignerError as exc:
                print(exc.reason.value)
            """
        )
        env = dict(os.environ)
        src = str(Path(sente.__file__).resolve().parents[1])
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [src, env.get("PYTHONPATH")]))

        started = time.monotonic()
        result = subprocess.run(
            [sys.executable, "-c", script], capture_output=True, text=True, env=env, timeout=30
        )
        elapsed = time.monotonic() - started

        assert result.returncode == 0, result.stderr
        assert result.stdout.strip() == "cancelled"
        assert elapsed < 20


class TestVerify:
    def test_tampered_transaction(self, scripted, scripted_gateway, keypair) -> None:
        other = _unsigned(keypair, memo="swapped")
        other.envelope.sign(keypair)
        scripted.respond = lambda envelope_xdr: other.to_xdr()

        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair))
        assert exc_info.value.reason is SignerFailure.INVALID_RESPONSE

    def test_unsigned_response(self, scripted, scripted_gateway, keypair) -> None:
        scripted.respond = lambda envelope_xdr: envelope_xdr
        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair))
        assert exc_info.value.reason is SignerFailure.INVALID_RESPONSE

    def test_malformed_response(self, scripted, scripted_gateway, keypair) -> None:
        scripted.respond = lambda envelope_xdr: "garbage"
        with pytest.raises(SignerError) as exc_info:
            scripted_gateway.sign(_unsigned(keypair))
        assert exc_info.value.reason is SignerFailure.INVALID_RESPONSE


class TestMapSignerException:
    @pytest.mark.parametrize(
        ("code", "reason"),
        [
            (USER_REJECTED_CODE, SignerFailure.USER_REJECTED),
            (REQUEST_PENDING_CODE, SignerFailure.BUSY),
            (-1, SignerFailure.UNAVAILABLE),
        ],
    )
    def test_reserved_codes(self, code: int, reason: SignerFailure) -> None:
        assert map_signer_exception(ExternalSignerError(code, "x")).reason is reason

    def test_signer_error_passes_through(self) -> None:
        original = SignerError(SignerFailure.CANCELLED)
        assert map_signer_exception(original) is original


def test_keypair_signer_reports_its_network(keypair: Keypair) -> None:
    signer = KeypairSigner(keypair.secret, TESTNET.network_passphrase)
    assert signer.get_network() == TESTNET.network_passphrase
    assert signer.request_access() == keypair.public_key
