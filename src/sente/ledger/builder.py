"""
Transaction Builder - assemble one unsigned transaction.

Exactly one operation per transaction: a failed call is retried as a single
fresh attempt, never as part of a partial batch.  Building only reads the
account snapshot; nothing on the ledger changes.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from stellar_sdk import Account, Asset, StrKey, TransactionBuilder
from stellar_sdk.exceptions import SdkError

from ..errors import BuildError, InvalidFee, InvalidTimeout
from .codec import to_scval
from .models import AccountSnapshot, ContractCall, Operation, Payment, UnsignedTransaction

logger = logging.getLogger(__name__)

STROOPS_PER_LUMEN = 10_000_000


def _stroops_to_amount(stroops: int) -> str:
    # stellar_sdk takes payment amounts as decimal lumen strings
    whole, frac = divmod(stroops, STROOPS_PER_LUMEN)
    return f"{whole}.{frac:07d}"


def _validate_operation(operation: Operation) -> None:
    if isinstance(operation, ContractCall):
        if not StrKey.is_valid_contract(operation.contract_id):
            raise BuildError(f"Invalid contract address: {operation.contract_id}")
        if not operation.function_name:
            raise BuildError("Contract call needs a function name")
    elif isinstance(operation, Payment):
        if not StrKey.is_valid_ed25519_public_key(operation.destination):
            raise BuildError(f"Invalid destination account: {operation.destination}")
        if isinstance(operation.amount, bool) or not isinstance(operation.amount, int) or operation.amount <= 0:
            raise BuildError("Payment amount must be a positive number of stroops")
    else:
        raise BuildError(f"Unsupported operation: {type(operation).__name__}")


def build_transaction(
    account: AccountSnapshot,
    operation: Operation,
    fee: int,
    network_passphrase: str,
    memo: Optional[str] = None,
    timeout_seconds: int = 180,
    clock: Callable[[], float] = time.time,
) -> UnsignedTransaction:
    """
    Build an unsigned single-operation transaction.

    Args:
        account: Fresh snapshot of the source account
        operation: ContractCall or Payment
        fee: Fee in stroops (contract calls need more than payments)
        network_passphrase: Network identifier the signature commits to
        memo: Optional text memo (max 28 bytes)
        timeout_seconds: Seconds until the transaction expires

    Returns:
        UnsignedTransaction ready for simulation (contract calls) or signing

    Raises:
        InvalidTimeout: If timeout_seconds <= 0
        InvalidFee: If fee is not a positive integer
        BuildError: If the memo or operation is malformed
    """
    if isinstance(timeout_seconds, bool) or not isinstance(timeout_seconds, int) or timeout_seconds <= 0:
        raise InvalidTimeout(f"timeout_seconds must be a positive integer, got {timeout_seconds!r}")
    if isinstance(fee, bool) or not isinstance(fee, int) or fee <= 0:
        raise InvalidFee(f"fee must be a positive integer in stroops, got {fee!r}")
    _validate_operation(operation)

    expires_at = int(clock()) + timeout_seconds
    source = Account(account.account_id, account.sequence)

    try:
        builder = TransactionBuilder(
            source_account=source,
            network_passphrase=network_passphrase,
            base_fee=fee,
        )
        if memo:
            builder.add_text_memo(memo)

        if isinstance(operation, ContractCall):
            builder.append_invoke_contract_function_op(
                contract_id=operation.contract_id,
                function_name=operation.function_name,
                parameters=[to_scval(arg) for arg in operation.args],
            )
        else:
            builder.append_payment_op(
                destination=operation.destination,
                asset=Asset.native(),
                amount=_stroops_to_amount(operation.amount),
            )

        builder.add_time_bounds(0, expires_at)
        envelope = builder.build()
    except (SdkError, ValueError, TypeError) as exc:
        raise BuildError(f"Could not build transaction: {exc}") from exc

    unsigned = UnsignedTransaction(
        account=account,
        operation=operation,
        fee=fee,
        network_passphrase=network_passphrase,
        expires_at=expires_at,
        envelope=envelope,
        memo=memo,
    )
    logger.debug(
        "built tx %s from %s seq=%d fee=%d",
        unsigned.tx_hash,
        account.account_id,
        envelope.transaction.sequence,
        fee,
    )
    return unsigned
