"""
Typed errors for the Sente client.

Every pipeline stage raises a subclass of ``SenteError`` so callers can catch
one specific failure mode or the whole family.  ``exit_code`` is what the CLI
exits with when the error reaches the top level.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class SenteError(RuntimeError):
    exit_code: int = 1


class ConfigurationError(SenteError):
    """Missing or invalid configuration (e.g. unknown contract name). Fatal."""

    exit_code = 2


class EndpointError(SenteError):
    """Transport failure or JSON-RPC error object from an endpoint."""

    exit_code = 3

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        code: Optional[int] = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.code = code
        self.http_status = http_status


class AccountNotFound(EndpointError):
    """The ledger has no such account (usually: not funded yet)."""

    def __init__(self, account_id: str) -> None:
        super().__init__(
            f"Account {account_id} not found. Make sure the account is funded.",
            method="loadAccount",
            http_status=404,
        )
        self.account_id = account_id


class BuildError(SenteError, ValueError):
    exit_code = 4


class InvalidTimeout(BuildError):
    pass


class InvalidFee(BuildError):
    pass


class SimulationError(SenteError):
    """The dry run reported that the call would fail."""

    exit_code = 5

    def __init__(self, diagnostic: str) -> None:
        super().__init__(f"Simulation failed: {diagnostic}")
        self.diagnostic = diagnostic


class SignerFailure(str, Enum):
    USER_REJECTED = "user_rejected"
    UNAVAILABLE = "unavailable"
    BUSY = "busy"
    CANCELLED = "cancelled"
    INVALID_RESPONSE = "invalid_response"


class SignerError(SenteError):
    exit_code = 6

    def __init__(self, reason: SignerFailure, message: str = "") -> None:
        super().__init__(message or reason.value.replace("_", " "))
        self.reason = reason

    @property
    def retryable(self) -> bool:
        # Only a busy signer may be retried (after backoff).
        return self.reason is SignerFailure.BUSY


class SubmissionFailure(str, Enum):
    INSUFFICIENT_FEE = "insufficient_fee"
    DUPLICATE_SEQUENCE = "duplicate_sequence"
    NETWORK_REJECTED = "network_rejected"


class SubmissionError(SenteError):
    """The network refused the signed transaction.

    A retry always needs a freshly built transaction from a new account
    snapshot; the same signed bytes must never be resubmitted.
    """

    exit_code = 7
    requires_rebuild = True

    def __init__(
        self,
        reason: SubmissionFailure,
        message: str,
        result_code: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.result_code = result_code
        self.tx_hash = tx_hash


class PollTimeout(SenteError):
    """No terminal status before the deadline. The transaction may still land."""

    exit_code = 8

    def __init__(self, tx_hash: str, waited_ms: int) -> None:
        super().__init__(
            f"Transaction {tx_hash} not final after {waited_ms} ms; "
            f"re-query it with 'sente tx status {tx_hash}'"
        )
        self.tx_hash = tx_hash
        self.waited_ms = waited_ms


class CodecFailure(str, Enum):
    UNSUPPORTED_TYPE = "unsupported_type"
    INVALID_VALUE = "invalid_value"


class CodecError(SenteError, TypeError):
    exit_code = 9

    def __init__(self, reason: CodecFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class SessionError(SenteError):
    exit_code = 10
