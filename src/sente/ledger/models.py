from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from stellar_sdk import TransactionEnvelope

from ..errors import PollTimeout, SenteError
from .codec import ContractValue


@dataclass(frozen=True)
class AccountSnapshot:
    """Read-only copy of an account's sequence state.

    Good for building exactly one transaction.  Two builds from the same
    snapshot carry the same sequence number and the second one submitted
    is rejected by the ledger.
    """

    account_id: str
    sequence: int


@dataclass(frozen=True)
class ContractCall:
    contract_id: str
    function_name: str
    args: tuple[ContractValue, ...] = ()


@dataclass(frozen=True)
class Payment:
    destination: str
    amount: int  # stroops


Operation = Union[ContractCall, Payment]


@dataclass
class UnsignedTransaction:
    """An unsigned envelope plus the inputs it was built from.

    Only ``ledger.simulate.assemble`` mutates it, and only before signing.
    """

    account: AccountSnapshot
    operation: Operation
    fee: int
    network_passphrase: str
    expires_at: int
    envelope: TransactionEnvelope
    memo: Optional[str] = None
    assembled: bool = False

    @property
    def tx_hash(self) -> str:
        return self.envelope.hash_hex()

    @property
    def total_fee(self) -> int:
        return self.envelope.transaction.fee

    def to_xdr(self) -> str:
        return self.envelope.to_xdr()


@dataclass(frozen=True)
class SignedTransaction:
    envelope_xdr: str
    tx_hash: str
    network_passphrase: str
    source: str
    sequence: int


@dataclass(frozen=True)
class SubmissionHandle:
    tx_hash: str
    latest_ledger: Optional[int] = None

    def __str__(self) -> str:
        return self.tx_hash


class TxStatus(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def terminal(self) -> bool:
        return self in (TxStatus.SUCCESS, TxStatus.FAILED)


@dataclass(frozen=True)
class TransactionStatus:
    """One getTransaction observation."""

    status: TxStatus
    return_value: Optional[ContractValue] = None
    result_code: Optional[str] = None
    ledger: Optional[int] = None


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TransactionOutcome:
    """Result of one invocation: Success(value), Failed(diagnostic) or TimedOut."""

    status: OutcomeStatus
    value: Any = None
    diagnostic: str = ""
    tx_hash: Optional[str] = None
    endpoint_status: Optional[str] = None
    error: Optional[SenteError] = field(default=None, compare=False)

    @classmethod
    def success(cls, value: Any = None, tx_hash: Optional[str] = None) -> "TransactionOutcome":
        return cls(OutcomeStatus.SUCCESS, value=value, tx_hash=tx_hash, endpoint_status=TxStatus.SUCCESS.value)

    @classmethod
    def failed(
        cls,
        diagnostic: str,
        error: Optional[SenteError] = None,
        tx_hash: Optional[str] = None,
        endpoint_status: Optional[str] = None,
    ) -> "TransactionOutcome":
        return cls(
            OutcomeStatus.FAILED,
            diagnostic=diagnostic,
            error=error,
            tx_hash=tx_hash,
            endpoint_status=endpoint_status,
        )

    @classmethod
    def timed_out(cls, tx_hash: str, waited_ms: int) -> "TransactionOutcome":
        error = PollTimeout(tx_hash, waited_ms)
        return cls(
            OutcomeStatus.TIMED_OUT,
            diagnostic=str(error),
            tx_hash=tx_hash,
            endpoint_status=TxStatus.PENDING.value,
            error=error,
        )

    @classmethod
    def cancelled(cls, diagnostic: str, error: Optional[SenteError] = None) -> "TransactionOutcome":
        return cls(OutcomeStatus.CANCELLED, diagnostic=diagnostic, error=error)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def raise_for_status(self) -> "TransactionOutcome":
        if self.ok:
            return self
        if self.error is not None:
            raise self.error
        raise SenteError(self.diagnostic or self.status.value)
