"""
Submission & Finality Poller.

State machine for one submission:

    PENDING (NOT_FOUND while the endpoint has not indexed it yet)
        -> SUCCESS | FAILED      terminal status observed
        -> TIMED_OUT             max_wait_ms elapsed first

Polling runs at a fixed interval under a hard deadline, and submission is
at-most-once per signed transaction.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

from stellar_sdk import xdr as stellar_xdr

from ..config import DEFAULT_MAX_WAIT_MS, DEFAULT_POLL_INTERVAL_MS, MAX_WAIT_CEILING_MS
from ..errors import SubmissionError, SubmissionFailure
from .codec import ContractValue, from_xdr
from .models import (
    SignedTransaction,
    SubmissionHandle,
    TransactionOutcome,
    TransactionStatus,
    TxStatus,
)
from .rpc import ExecutionApi, classify_result_code

logger = logging.getLogger(__name__)

# Hashes remembered for the at-most-once check. A transaction older than this
# window has long expired or consumed its sequence, so forgetting it is safe.
SUBMITTED_HISTORY = 256


def _result_code(result_xdr: Optional[str]) -> Optional[str]:
    """Pull the transaction result code name (e.g. 'txBAD_SEQ') out of a TransactionResult."""
    if not result_xdr:
        return None
    try:
        result = stellar_xdr.TransactionResult.from_xdr(result_xdr)
    except Exception:  # noqa: BLE001 - best-effort diagnostics only
        return None
    return result.result.code.name


def _return_value_from_meta(meta_xdr: str) -> Optional[ContractValue]:
    meta = stellar_xdr.TransactionMeta.from_xdr(meta_xdr)
    for version in ("v4", "v3"):
        body = getattr(meta, version, None)
        soroban_meta = getattr(body, "soroban_meta", None) if body is not None else None
        if soroban_meta is not None and soroban_meta.return_value is not None:
            return from_xdr(soroban_meta.return_value.to_xdr())
    return None


def parse_status(payload: dict[str, Any]) -> TransactionStatus:
    raw = str(payload.get("status", TxStatus.NOT_FOUND.value)).upper()
    try:
        status = TxStatus(raw)
    except ValueError:
        status = TxStatus.PENDING

    return_value = None
    if status is TxStatus.SUCCESS:
        if payload.get("returnValue"):
            return_value = from_xdr(payload["returnValue"])
        elif payload.get("resultMetaXdr"):
            return_value = _return_value_from_meta(payload["resultMetaXdr"])

    return TransactionStatus(
        status=status,
        return_value=return_value,
        result_code=_result_code(payload.get("resultXdr")),
        ledger=payload.get("ledger"),
    )


class FinalityPoller:
    """Submit signed transactions and wait for them to become final."""

    def __init__(
        self,
        execution: ExecutionApi,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        max_wait_ms: int = DEFAULT_MAX_WAIT_MS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        history: int = SUBMITTED_HISTORY,
    ) -> None:
        self.execution = execution
        self.poll_interval_ms = poll_interval_ms
        self.max_wait_ms = max_wait_ms
        self._sleep = sleep
        self._clock = clock
        self._submitted: OrderedDict[str, None] = OrderedDict()
        self._history = history
        self._lock = threading.Lock()

    def submit(self, signed: SignedTransaction) -> SubmissionHandle:
        """
        Send a signed transaction to the execution endpoint, once.

        Raises:
            SubmissionError: If the endpoint rejects it, or if this exact
                transaction was already submitted through this poller
        """
        with self._lock:
            if signed.tx_hash in self._submitted:
                raise SubmissionError(
                    SubmissionFailure.DUPLICATE_SEQUENCE,
                    f"Transaction {signed.tx_hash} was already submitted; "
                    "rebuild from a fresh account snapshot to retry",
                    tx_hash=signed.tx_hash,
                )
            self._submitted[signed.tx_hash] = None
            while len(self._submitted) > self._history:
                self._submitted.popitem(last=False)

        logger.debug("submitting %s (seq=%d)", signed.tx_hash, signed.sequence)
        result = self.execution.send_transaction(signed.envelope_xdr) or {}
        status = str(result.get("status", "")).upper()
        tx_hash = result.get("hash") or signed.tx_hash

        if status == "PENDING":
            return SubmissionHandle(tx_hash=tx_hash, latest_ledger=result.get("latestLedger"))

        if status == "DUPLICATE":
            raise SubmissionError(
                SubmissionFailure.DUPLICATE_SEQUENCE,
                f"Transaction {tx_hash} is a duplicate submission",
                result_code="DUPLICATE",
                tx_hash=tx_hash,
            )

        if status == "ERROR":
            code = _result_code(result.get("errorResultXdr"))
            raise SubmissionError(
                classify_result_code(code),
                f"Transaction rejected by network: {code or 'ERROR'}",
                result_code=code,
                tx_hash=tx_hash,
            )

        # TRY_AGAIN_LATER or anything unknown
        raise SubmissionError(
            SubmissionFailure.NETWORK_REJECTED,
            f"Transaction not accepted: {status or 'no status'}",
            result_code=status or None,
            tx_hash=tx_hash,
        )

    def status(self, handle: SubmissionHandle | str) -> TransactionStatus:
        """Query a handle once (the follow-up after a poll timeout)."""
        tx_hash = str(handle)
        return parse_status(self.execution.get_transaction(tx_hash) or {})

    def await_outcome(
        self,
        handle: SubmissionHandle | str,
        poll_interval_ms: Optional[int] = None,
        max_wait_ms: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionOutcome:
        """
        Poll until SUCCESS/FAILED or until max_wait_ms has elapsed.

        NOT_FOUND and PENDING are both "keep waiting"; the loop sleeps one
        interval between polls and never sleeps past the deadline.
        """
        interval_ms = self.poll_interval_ms if poll_interval_ms is None else poll_interval_ms
        wait_ms = self.max_wait_ms if max_wait_ms is None else max_wait_ms
        if interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        if wait_ms <= 0:
            raise ValueError("max_wait_ms must be positive")
        wait_ms = min(wait_ms, MAX_WAIT_CEILING_MS)

        tx_hash = str(handle)
        start = self._clock()
        deadline = start + wait_ms / 1000.0
        polls = 0

        while True:
            observed = self.status(tx_hash)
            polls += 1

            if observed.status is TxStatus.SUCCESS:
                logger.debug("%s succeeded after %d polls", tx_hash, polls)
                return TransactionOutcome.success(
                    value=observed.return_value.value if observed.return_value else None,
                    tx_hash=tx_hash,
                )

            if observed.status is TxStatus.FAILED:
                detail = f" ({observed.result_code})" if observed.result_code else ""
                logger.debug("%s failed after %d polls%s", tx_hash, polls, detail)
                return TransactionOutcome.failed(
                    f"Transaction failed: {observed.status.value}{detail}",
                    tx_hash=tx_hash,
                    endpoint_status=observed.status.value,
                )

            if cancel is not None and cancel.is_set():
                return TransactionOutcome.cancelled(
                    f"Stopped waiting for {tx_hash}; it may still finalize",
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                waited = int(round((self._clock() - start) * 1000))
                logger.debug("%s still %s after %d ms", tx_hash, observed.status.value, waited)
                return TransactionOutcome.timed_out(tx_hash, waited)

            self._sleep(min(interval_ms / 1000.0, remaining))
