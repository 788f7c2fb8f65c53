"""
Endpoint Client - Horizon (ledger) and Soroban RPC (execution) over httpx.

Two logical connections:
- ledger endpoint:    account state and raw transaction submission (REST)
- execution endpoint: simulation, async submission and status polling (JSON-RPC 2.0)

Each endpoint owns one httpx.Client.  The clients are created once and then
only read, so a single EndpointClient can serve any number of concurrent
invocations from different accounts.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional, Protocol

import httpx

from ..config import NetworkConfig
from ..errors import AccountNotFound, EndpointError, SubmissionError, SubmissionFailure
from .models import AccountSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


# ---------------------------------------------------------------------------
# Result code classification (shared by Horizon and Soroban RPC submission)
# ---------------------------------------------------------------------------

def _normalize_code(code: str) -> str:
    # "tx_bad_seq" (Horizon) and "txBAD_SEQ" (XDR) both become "txbadseq"
    return code.lower().replace("_", "")


_FAILURE_BY_CODE = {
    "txbadseq": SubmissionFailure.DUPLICATE_SEQUENCE,
    "txinsufficientfee": SubmissionFailure.INSUFFICIENT_FEE,
}


def classify_result_code(code: Optional[str]) -> SubmissionFailure:
    if not code:
        return SubmissionFailure.NETWORK_REJECTED
    return _FAILURE_BY_CODE.get(_normalize_code(code), SubmissionFailure.NETWORK_REJECTED)


# ---------------------------------------------------------------------------
# Protocols (what the pipeline needs from each endpoint)
# ---------------------------------------------------------------------------

class LedgerApi(Protocol):
    def load_account(self, account_id: str) -> AccountSnapshot:
        ...

    def submit_raw_transaction(self, envelope_xdr: str) -> dict[str, Any]:
        ...


class ExecutionApi(Protocol):
    def simulate_transaction(self, envelope_xdr: str) -> dict[str, Any]:
        ...

    def send_transaction(self, envelope_xdr: str) -> dict[str, Any]:
        ...

    def get_transaction(self, tx_hash: str) -> dict[str, Any]:
        ...

    def get_network(self) -> dict[str, Any]:
        ...

    def get_latest_ledger(self) -> dict[str, Any]:
        ...


# ---------------------------------------------------------------------------
# Ledger endpoint (Horizon)
# ---------------------------------------------------------------------------

class LedgerEndpoint:
    def __init__(
        self,
        horizon_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.horizon_url = horizon_url.rstrip("/")
        self._client = httpx.Client(base_url=self.horizon_url, timeout=timeout, transport=transport)

    def load_account(self, account_id: str) -> AccountSnapshot:
        """
        Fetch the account's current sequence number.

        Raises:
            AccountNotFound: If the account does not exist (unfunded)
            EndpointError: On any other transport or HTTP failure
        """
        try:
            response = self._client.get(f"/accounts/{account_id}")
        except httpx.HTTPError as exc:
            raise EndpointError(f"Horizon unreachable: {exc}", method="loadAccount") from exc

        if response.status_code == 404:
            raise AccountNotFound(account_id)
        if response.is_error:
            raise EndpointError(
                f"Horizon error loading account: HTTP {response.status_code}",
                method="loadAccount",
                http_status=response.status_code,
            )

        data = response.json()
        snapshot = AccountSnapshot(account_id=data["id"], sequence=int(data["sequence"]))
        logger.debug("loaded account %s at sequence %d", snapshot.account_id, snapshot.sequence)
        return snapshot

    def submit_raw_transaction(self, envelope_xdr: str) -> dict[str, Any]:
        """
        Submit a signed envelope and wait for Horizon's synchronous verdict.

        Returns:
            Horizon transaction record (hash, ledger, successful, ...)

        Raises:
            SubmissionError: If Horizon rejects the transaction
        """
        try:
            response = self._client.post("/transactions", data={"tx": envelope_xdr})
        except httpx.HTTPError as exc:
            raise EndpointError(f"Horizon unreachable: {exc}", method="submitTransaction") from exc

        if response.status_code == 400:
            body = _json_or_empty(response)
            codes = body.get("extras", {}).get("result_codes", {})
            tx_code = codes.get("transaction")
            op_codes = codes.get("operations") or []
            detail = tx_code or body.get("title", "rejected")
            if op_codes:
                detail += f" (operations: {', '.join(op_codes)})"
            raise SubmissionError(
                classify_result_code(tx_code),
                f"Transaction rejected by ledger: {detail}",
                result_code=tx_code,
                tx_hash=body.get("extras", {}).get("hash"),
            )
        if response.is_error:
            raise EndpointError(
                f"Horizon error submitting transaction: HTTP {response.status_code}",
                method="submitTransaction",
                http_status=response.status_code,
            )
        return response.json()

    def close(self) -> None:
        self._client.close()


def fund_testnet_account(
    friendbot_url: str,
    account_id: str,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> dict[str, Any]:
    """Ask friendbot to create and fund a testnet account."""
    with httpx.Client(timeout=timeout, transport=transport) as client:
        try:
            response = client.get(friendbot_url, params={"addr": account_id})
        except httpx.HTTPError as exc:
            raise EndpointError(f"Friendbot unreachable: {exc}", method="friendbot") from exc

    if response.is_error:
        raise EndpointError(
            "Failed to fund account",
            method="friendbot",
            http_status=response.status_code,
        )
    return _json_or_empty(response)


# ---------------------------------------------------------------------------
# Execution endpoint (Soroban JSON-RPC)
# ---------------------------------------------------------------------------

class ExecutionEndpoint:
    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    def _rpc_call(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "simulateTransaction")
            params: RPC parameters (Soroban RPC uses named params)

        Returns:
            Result field from the RPC response

        Raises:
            EndpointError: If the transport fails or the response carries an error object
        """
        payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
        }
        if params is not None:
            payload["params"] = params

        try:
            response = self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise EndpointError(
                f"RPC {method} failed: HTTP {exc.response.status_code}",
                method=method,
                http_status=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise EndpointError(f"RPC {method} failed: {exc}", method=method) from exc

        if "error" in data:
            error = data["error"] or {}
            raise EndpointError(
                f"RPC error: {error.get('message', error)}",
                method=method,
                code=error.get("code"),
            )

        return data.get("result")

    def simulate_transaction(self, envelope_xdr: str) -> dict[str, Any]:
        return self._rpc_call("simulateTransaction", {"transaction": envelope_xdr})

    def send_transaction(self, envelope_xdr: str) -> dict[str, Any]:
        return self._rpc_call("sendTransaction", {"transaction": envelope_xdr})

    def get_transaction(self, tx_hash: str) -> dict[str, Any]:
        return self._rpc_call("getTransaction", {"hash": tx_hash})

    def get_network(self) -> dict[str, Any]:
        return self._rpc_call("getNetwork")

    def get_latest_ledger(self) -> dict[str, Any]:
        return self._rpc_call("getLatestLedger")

    def close(self) -> None:
        self._client.close()


class EndpointClient:
    """Both endpoints of one network, created once and shared."""

    def __init__(self, ledger: LedgerApi, execution: ExecutionApi) -> None:
        self.ledger = ledger
        self.execution = execution

    @classmethod
    def from_network(
        cls,
        network: NetworkConfig,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "EndpointClient":
        return cls(
            LedgerEndpoint(network.horizon_url, timeout=timeout, transport=transport),
            ExecutionEndpoint(network.soroban_rpc_url, timeout=timeout, transport=transport),
        )

    def close(self) -> None:
        for endpoint in (self.ledger, self.execution):
            close = getattr(endpoint, "close", None)
            if close is not None:
                close()

    def __enter__(self) -> "EndpointClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
