"""
Signer Gateway - hand a transaction to an external signer, get it back signed.

The gateway never sees key material.  It enforces one pending request per
signer (a second one fails fast with BUSY instead of queueing) and lets the
operator cancel a request that is waiting on user approval.

Signers:
- KeypairSigner: local secret seed (CLI and deployment use)
- BridgeSigner:  an external wallet reached through an HTTP bridge
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Optional, Protocol

import httpx
from stellar_sdk import Keypair, TransactionEnvelope
from stellar_sdk.exceptions import SdkError

from ..errors import SignerError, SignerFailure
from ..ledger.models import SignedTransaction, UnsignedTransaction

logger = logging.getLogger(__name__)

# Reserved error codes of the external signer API
USER_REJECTED_CODE = -4
REQUEST_PENDING_CODE = -3

_CANCEL_CHECK_INTERVAL = 0.1


class ExternalSignerError(Exception):
    """Raised by signer implementations with the wallet's error code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class Signer(Protocol):
    def is_available(self) -> bool:
        ...

    def request_access(self) -> str:
        ...

    def get_public_key(self) -> str:
        ...

    def get_network(self) -> str:
        """Network passphrase the signer is currently set to."""
        ...

    def sign(self, envelope_xdr: str, network_passphrase: str) -> str:
        ...


class KeypairSigner:
    """Signs with a local secret seed. Always available, never asks anyone."""

    def __init__(self, secret: str, network_passphrase: str) -> None:
        self._keypair = Keypair.from_secret(secret)
        self._network_passphrase = network_passphrase

    def is_available(self) -> bool:
        return True

    def request_access(self) -> str:
        return self._keypair.public_key

    def get_public_key(self) -> str:
        return self._keypair.public_key

    def get_network(self) -> str:
        return self._network_passphrase

    def sign(self, envelope_xdr: str, network_passphrase: str) -> str:
        envelope = TransactionEnvelope.from_xdr(envelope_xdr, network_passphrase)
        envelope.sign(self._keypair)
        return envelope.to_xdr()


def _field(body: dict[str, Any], key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value:
        raise ExternalSignerError(0, f"Signer bridge reply is missing '{key}'")
    return value


class BridgeSigner:
    """
    External wallet behind a small HTTP bridge.

    Bridge API:
        GET  /status      -> {"connected": bool, "unlocked": bool}
        POST /access      -> {"publicKey": "G..."}
        GET  /public-key  -> {"publicKey": "G..."}
        GET  /network     -> {"networkPassphrase": "..."}
        POST /sign        {"xdr", "networkPassphrase"} -> {"signedTxXdr": "..."}
    Errors come back as {"error": {"code": int, "message": str}}.

    No request timeout by default: signing waits for a human.
    """

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self._client = httpx.Client(base_url=self.url, timeout=timeout, transport=transport)

    def _request(self, method: str, path: str, payload: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        try:
            response = self._client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            raise ExternalSignerError(0, f"Signer bridge unreachable: {exc}") from exc
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        error = body.get("error")
        if error:
            raise ExternalSignerError(int(error.get("code", 0)), str(error.get("message", "signer error")))
        if response.is_error:
            raise ExternalSignerError(0, f"Signer bridge returned HTTP {response.status_code}")
        return body

    def is_available(self) -> bool:
        try:
            status = self._request("GET", "/status")
        except ExternalSignerError:
            return False
        return bool(status.get("connected")) and bool(status.get("unlocked", True))

    def request_access(self) -> str:
        return _field(self._request("POST", "/access"), "publicKey")

    def get_public_key(self) -> str:
        return _field(self._request("GET", "/public-key"), "publicKey")

    def get_network(self) -> str:
        return _field(self._request("GET", "/network"), "networkPassphrase")

    def sign(self, envelope_xdr: str, network_passphrase: str) -> str:
        body = self._request(
            "POST",
            "/sign",
            {"xdr": envelope_xdr, "networkPassphrase": network_passphrase},
        )
        return _field(body, "signedTxXdr")

    def close(self) -> None:
        self._client.close()


def map_signer_exception(exc: BaseException) -> SignerError:
    if isinstance(exc, SignerError):
        return exc
    if isinstance(exc, ExternalSignerError):
        if exc.code == USER_REJECTED_CODE:
            return SignerError(SignerFailure.USER_REJECTED, exc.message or "User declined to sign")
        if exc.code == REQUEST_PENDING_CODE:
            return SignerError(SignerFailure.BUSY, exc.message or "Signer already has a pending request")
        return SignerError(SignerFailure.UNAVAILABLE, exc.message)
    return SignerError(SignerFailure.UNAVAILABLE, f"Signer failed: {exc}")


class SignerGateway:
    """One-request-at-a-time front door to a signer."""

    def __init__(self, signer: Signer) -> None:
        self.signer = signer
        self._pending = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._pending.locked()

    def sign(
        self,
        unsigned: UnsignedTransaction,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> SignedTransaction:
        """
        Get a signature for ``unsigned`` from the external signer.

        Args:
            unsigned: Assembled (contract call) or built (payment) transaction
            cancel: Set by the operator to abandon the request
            timeout: Seconds to wait for approval before giving up

        Raises:
            SignerError: USER_REJECTED, UNAVAILABLE, BUSY, CANCELLED or
                INVALID_RESPONSE
        """
        if not self._pending.acquire(blocking=False):
            raise SignerError(SignerFailure.BUSY, "A signing request is already pending")

        try:
            available = self.signer.is_available()
        except Exception:  # noqa: BLE001 - any probe failure means "not usable"
            available = False
        if not available:
            self._pending.release()
            raise SignerError(SignerFailure.UNAVAILABLE, "Signer is not connected or is locked")

        envelope_xdr = unsigned.to_xdr()
        expected_hash = unsigned.tx_hash
        future: Future[str] = Future()
        # Daemon worker: an abandoned request must not keep the process alive.
        worker = threading.Thread(
            target=self._sign_and_release,
            args=(future, envelope_xdr, unsigned.network_passphrase),
            name="sente-signer",
            daemon=True,
        )
        try:
            worker.start()
        except RuntimeError:
            self._pending.release()
            raise

        logger.debug("waiting for signature on %s", expected_hash)
        signed_xdr = self._wait(future, cancel, timeout)
        return self._verify(unsigned, signed_xdr, expected_hash)

    def _sign_and_release(self, future: "Future[str]", envelope_xdr: str, network_passphrase: str) -> None:
        # The pending slot frees only once the signer itself answers, even
        # if the caller has given up waiting. It is released before the
        # result is published so the next request never sees a stale BUSY.
        try:
            try:
                signed_xdr = self.signer.sign(envelope_xdr, network_passphrase)
            finally:
                self._pending.release()
        except Exception as exc:  # noqa: BLE001 - handed to the waiting caller
            future.set_exception(exc)
        else:
            future.set_result(signed_xdr)

    def _wait(
        self,
        future: "Future[str]",
        cancel: Optional[threading.Event],
        timeout: Optional[float],
    ) -> str:
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if cancel is not None and cancel.is_set():
                raise SignerError(SignerFailure.CANCELLED, "Signing cancelled by operator")
            if deadline is not None and time.monotonic() >= deadline:
                raise SignerError(SignerFailure.CANCELLED, "Timed out waiting for signature approval")

            wait = None if cancel is None and deadline is None else _CANCEL_CHECK_INTERVAL
            try:
                return future.result(timeout=wait)
            except FutureTimeout:
                continue
            except Exception as exc:  # noqa: BLE001 - mapped onto the signer taxonomy
                raise map_signer_exception(exc) from exc

    @staticmethod
    def _verify(unsigned: UnsignedTransaction, signed_xdr: str, expected_hash: str) -> SignedTransaction:
        try:
            envelope = TransactionEnvelope.from_xdr(signed_xdr, unsigned.network_passphrase)
        except (SdkError, ValueError) as exc:
            raise SignerError(SignerFailure.INVALID_RESPONSE, f"Signer returned malformed XDR: {exc}") from exc

        if envelope.hash_hex() != expected_hash:
            raise SignerError(
                SignerFailure.INVALID_RESPONSE,
                "Signer returned a different transaction than the one submitted for signing",
            )
        if not envelope.signatures:
            raise SignerError(SignerFailure.INVALID_RESPONSE, "Signer returned an unsigned transaction")

        tx = envelope.transaction
        return SignedTransaction(
            envelope_xdr=signed_xdr,
            tx_hash=expected_hash,
            network_passphrase=unsigned.network_passphrase,
            source=tx.source.account_id,
            sequence=tx.sequence,
        )

