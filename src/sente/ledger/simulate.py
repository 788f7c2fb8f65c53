"""
Simulator/Assembler - dry-run a contract call and attach its resource data.

Simulation never changes ledger state and may be repeated freely.  The
result is a tagged outcome: ``SimulationSuccess`` (footprint, resource fee,
auth entries, return value) or ``SimulationFailure`` (diagnostic).  Only a
success may be assembled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from stellar_sdk import xdr as stellar_xdr
from stellar_sdk.operation import InvokeHostFunction

from ..errors import EndpointError, SimulationError
from .codec import ContractValue, from_xdr
from .models import UnsignedTransaction
from .rpc import ExecutionApi

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Footprint:
    """Resources the simulated call needs before it can execute."""

    transaction_data: str  # base64 SorobanTransactionData
    min_resource_fee: int
    auth: tuple[str, ...] = ()
    read_only: int = 0
    read_write: int = 0
    instructions: int = 0
    cost: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SimulationSuccess:
    footprint: Footprint
    return_value: Optional[ContractValue] = None
    latest_ledger: Optional[int] = None

    ok = True


@dataclass(frozen=True)
class SimulationFailure:
    diagnostic: str
    events: tuple[str, ...] = ()
    latest_ledger: Optional[int] = None

    ok = False

    def to_error(self) -> SimulationError:
        return SimulationError(self.diagnostic)


SimulationResult = Union[SimulationSuccess, SimulationFailure]


def _parse_footprint(result: dict[str, Any]) -> Footprint:
    tx_data_xdr = result["transactionData"]
    tx_data = stellar_xdr.SorobanTransactionData.from_xdr(tx_data_xdr)
    resources = tx_data.resources
    ledger_footprint = resources.footprint

    first = (result.get("results") or [{}])[0]
    return Footprint(
        transaction_data=tx_data_xdr,
        min_resource_fee=int(result.get("minResourceFee", 0)),
        auth=tuple(first.get("auth") or ()),
        read_only=len(ledger_footprint.read_only),
        read_write=len(ledger_footprint.read_write),
        instructions=resources.instructions.uint32,
        cost=dict(result.get("cost") or {}),
    )


def simulate(execution: ExecutionApi, unsigned: UnsignedTransaction) -> SimulationResult:
    """
    Dry-run an unsigned contract call against current ledger state.

    A revert, a failed argument type check, an unresolvable contract
    address or archived state all come back as SimulationFailure.  Only a
    transport-level failure raises.

    Raises:
        EndpointError: If the execution endpoint cannot be reached
    """
    try:
        result = execution.simulate_transaction(unsigned.to_xdr())
    except EndpointError as exc:
        if exc.code is None:
            raise
        # JSON-RPC error object: the endpoint understood us and refused the call
        logger.debug("simulation of %s refused by endpoint: %s", unsigned.tx_hash, exc)
        return SimulationFailure(diagnostic=str(exc))

    result = result or {}
    latest = result.get("latestLedger")

    if result.get("error"):
        events = tuple(result.get("events") or ())
        logger.debug("simulation of %s failed: %s", unsigned.tx_hash, result["error"])
        return SimulationFailure(diagnostic=str(result["error"]), events=events, latest_ledger=latest)

    if result.get("restorePreamble"):
        return SimulationFailure(
            diagnostic="Contract state is archived and must be restored before this call",
            latest_ledger=latest,
        )

    if "transactionData" not in result:
        return SimulationFailure(
            diagnostic="Simulation returned no resource data",
            latest_ledger=latest,
        )

    footprint = _parse_footprint(result)
    first = (result.get("results") or [{}])[0]
    return_value = from_xdr(first["xdr"]) if first.get("xdr") else None

    logger.debug(
        "simulated %s: min_resource_fee=%d ro=%d rw=%d",
        unsigned.tx_hash,
        footprint.min_resource_fee,
        footprint.read_only,
        footprint.read_write,
    )
    return SimulationSuccess(footprint=footprint, return_value=return_value, latest_ledger=latest)


def assemble(unsigned: UnsignedTransaction, simulation: SimulationResult) -> UnsignedTransaction:
    """
    Merge simulated resources into the transaction so it can execute.

    Sets the soroban data and any auth entries, and raises the fee to
    ``fee + min_resource_fee``.  Mutates and returns ``unsigned``.

    Raises:
        SimulationError: If handed a SimulationFailure
    """
    if isinstance(simulation, SimulationFailure):
        raise simulation.to_error()
    if unsigned.assembled:
        raise ValueError(f"Transaction {unsigned.tx_hash} is already assembled")

    footprint = simulation.footprint
    tx = unsigned.envelope.transaction
    tx.soroban_data = stellar_xdr.SorobanTransactionData.from_xdr(footprint.transaction_data)

    op = tx.operations[0]
    if isinstance(op, InvokeHostFunction) and not op.auth and footprint.auth:
        op.auth = [stellar_xdr.SorobanAuthorizationEntry.from_xdr(entry) for entry in footprint.auth]

    tx.fee = unsigned.fee + footprint.min_resource_fee
    unsigned.assembled = True

    logger.debug("assembled %s with total fee %d", unsigned.tx_hash, tx.fee)
    return unsigned
