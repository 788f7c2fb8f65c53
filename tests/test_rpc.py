"""Horizon, Soroban RPC and signer-bridge clients over a mocked transport."""

from __future__ import annotations

import json

import httpx
import pytest
from stellar_sdk import Keypair

from sente.config import TESTNET
from sente.errors import AccountNotFound, EndpointError, SubmissionError, SubmissionFailure
from sente.ledger.rpc import (
    EndpointClient,
    ExecutionEndpoint,
    LedgerEndpoint,
    classify_result_code,
    fund_testnet_account,
)
from sente.wallet.signer import BridgeSigner, ExternalSignerError, USER_REJECTED_CODE


def _transport(handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


class TestLedgerEndpoint:
    def test_load_account(self) -> None:
        account = Keypair.random().public_key

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/accounts/{account}"
            return httpx.Response(200, json={"id": account, "sequence": "4096"})

        snapshot = LedgerEndpoint(TESTNET.horizon_url, transport=_transport(handler)).load_account(account)
        assert snapshot.account_id == account
        assert snapshot.sequence == 4096

    def test_unfunded_account(self) -> None:
        account = Keypair.random().public_key
        ledger = LedgerEndpoint(TESTNET.horizon_url, transport=_transport(lambda r: httpx.Response(404)))

        with pytest.raises(AccountNotFound) as exc_info:
            ledger.load_account(account)
        assert exc_info.value.account_id == account
        assert "funded" in str(exc_info.value)

    def test_server_error(self) -> None:
        ledger = LedgerEndpoint(TESTNET.horizon_url, transport=_transport(lambda r: httpx.Response(503)))
        with pytest.raises(EndpointError) as exc_info:
            ledger.load_account(Keypair.random().public_key)
        assert exc_info.value.http_status == 503

    def test_submit_bad_seq(self) -> None:
        body = {
            "title": "Transaction Failed",
            "extras": {"hash": "ff" * 32, "result_codes": {"transaction": "tx_bad_seq"}},
        }
        ledger = LedgerEndpoint(TESTNET.horizon_url, transport=_transport(lambda r: httpx.Response(400, json=body)))

        with pytest.raises(SubmissionError) as exc_info:
            ledger.submit_raw_transaction("AAAA")
        assert exc_info.value.reason is SubmissionFailure.DUPLICATE_SEQUENCE
        assert exc_info.value.tx_hash == "ff" * 32

    def test_submit_op_failure_lists_operations(self) -> None:
        body = {"extras": {"result_codes": {"transaction": "tx_failed", "operations": ["op_underfunded"]}}}
        ledger = LedgerEndpoint(TESTNET.horizon_url, transport=_transport(lambda r: httpx.Response(400, json=body)))

        with pytest.raises(SubmissionError) as exc_info:
            ledger.submit_raw_transaction("AAAA")
        assert exc_info.value.reason is SubmissionFailure.NETWORK_REJECTED
        assert "op_underfunded" in str(exc_info.value)

    def test_submit_success(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.content == b"tx=AAAA"
            return httpx.Response(200, json={"hash": "aa" * 32, "successful": True})

        ledger = LedgerEndpoint(TESTNET.horizon_url, transport=_transport(handler))
        assert ledger.submit_raw_transaction("AAAA")["successful"] is True


class TestExecutionEndpoint:
    def test_json_rpc_envelope(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            seen.append(payload)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": {"status": "PENDING"}})

        rpc = ExecutionEndpoint(TESTNET.soroban_rpc_url, transport=_transport(handler))
        assert rpc.get_transaction("ab" * 32) == {"status": "PENDING"}
        rpc.send_transaction("AAAA")

        assert seen[0]["method"] == "getTransaction"
        assert seen[0]["params"] == {"hash": "ab" * 32}
        assert seen[1]["params"] == {"transaction": "AAAA"}
        assert seen[0]["id"] != seen[1]["id"]

    def test_error_object_keeps_code(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "bad xdr"}})

        rpc = ExecutionEndpoint(TESTNET.soroban_rpc_url, transport=_transport(handler))
        with pytest.raises(EndpointError) as exc_info:
            rpc.simulate_transaction("AAAA")
        assert exc_info.value.code == -32602
        assert exc_info.value.method == "simulateTransaction"

    def test_http_failure(self) -> None:
        rpc = ExecutionEndpoint(TESTNET.soroban_rpc_url, transport=_transport(lambda r: httpx.Response(502)))
        with pytest.raises(EndpointError) as exc_info:
            rpc.get_network()
        assert exc_info.value.http_status == 502
        assert exc_info.value.code is None

    def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        rpc = ExecutionEndpoint(TESTNET.soroban_rpc_url, transport=_transport(handler))
        with pytest.raises(EndpointError):
            rpc.get_latest_ledger()


def test_endpoint_client_closes_both() -> None:
    transport = _transport(lambda r: httpx.Response(200, json={}))
    with EndpointClient.from_network(TESTNET, transport=transport) as client:
        assert isinstance(client.ledger, LedgerEndpoint)
        assert isinstance(client.execution, ExecutionEndpoint)


@pytest.mark.parametrize(
    ("code", "reason"),
    [
        ("tx_bad_seq", SubmissionFailure.DUPLICATE_SEQUENCE),
        ("txBAD_SEQ", SubmissionFailure.DUPLICATE_SEQUENCE),
        ("tx_insufficient_fee", SubmissionFailure.INSUFFICIENT_FEE),
        ("tx_failed", SubmissionFailure.NETWORK_REJECTED),
        (None, SubmissionFailure.NETWORK_REJECTED),
    ],
)
def test_classify_result_code(code, reason) -> None:
    assert classify_result_code(code) is reason


class TestFriendbot:
    def test_funds(self) -> None:
        account = Keypair.random().public_key

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["addr"] == account
            return httpx.Response(200, json={"successful": True})

        assert fund_testnet_account(TESTNET.friendbot_url, account, transport=_transport(handler)) == {
            "successful": True
        }

    def test_already_funded(self) -> None:
        with pytest.raises(EndpointError):
            fund_testnet_account(
                TESTNET.friendbot_url,
                Keypair.random().public_key,
                transport=_transport(lambda r: httpx.Response(400, json={"detail": "createAccountAlreadyExist"})),
            )


class TestBridgeSigner:
    def test_routes(self) -> None:
        account = Keypair.random().public_key

        def handler(request: httpx.Request) -> httpx.Response:
            route = (request.method, request.url.path)
            if route == ("GET", "/status"):
                return httpx.Response(200, json={"connected": True, "unlocked": True})
            if route in (("POST", "/access"), ("GET", "/public-key")):
                return httpx.Response(200, json={"publicKey": account})
            if route == ("GET", "/network"):
                return httpx.Response(200, json={"networkPassphrase": TESTNET.network_passphrase})
            if route == ("POST", "/sign"):
                body = json.loads(request.content)
                assert body["networkPassphrase"] == TESTNET.network_passphrase
                return httpx.Response(200, json={"signedTxXdr": body["xdr"] + "=="})
            return httpx.Response(404)

        bridge = BridgeSigner("http://127.0.0.1:8765/", transport=_transport(handler))
        assert bridge.is_available()
        assert bridge.request_access() == account
        assert bridge.get_public_key() == account
        assert bridge.get_network() == TESTNET.network_passphrase
        assert bridge.sign("AAAA", TESTNET.network_passphrase) == "AAAA=="
        bridge.close()

    def test_locked_wallet_is_unavailable(self) -> None:
        bridge = BridgeSigner(
            "http://127.0.0.1:8765",
            transport=_transport(lambda r: httpx.Response(200, json={"connected": True, "unlocked": False})),
        )
        assert not bridge.is_available()

    def test_error_body_carries_code(self) -> None:
        body = {"error": {"code": USER_REJECTED_CODE, "message": "User declined access"}}
        bridge = BridgeSigner("http://127.0.0.1:8765", transport=_transport(lambda r: httpx.Response(200, json=body)))

        with pytest.raises(ExternalSignerError) as exc_info:
            bridge.sign("AAAA", TESTNET.network_passphrase)
        assert exc_info.value.code == USER_REJECTED_CODE

    def test_unreachable_bridge(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        bridge = BridgeSigner("http://127.0.0.1:8765", transport=_transport(handler))
        assert not bridge.is_available()
        with pytest.raises(ExternalSignerError):
            bridge.get_public_key()
