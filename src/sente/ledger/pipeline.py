"""
Invocation Pipeline - one contract call, start to finish.

    read:   build -> simulate -> decode                 (no signature, no submit)
    invoke: build -> simulate -> assemble -> sign -> submit -> poll -> decode
    pay:    build -> sign -> ledger submit             (classic payment)

Each call is a single sequential unit of work.  Stage errors come back as a
``TransactionOutcome`` carrying the original diagnostic; configuration and
codec errors are programming faults and raise.  Nothing here retries.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..config import NetworkConfig, PipelineSettings
from ..errors import CodecError, ConfigurationError, EndpointError, SenteError, SignerError, SignerFailure
from ..wallet.signer import SignerGateway
from .builder import build_transaction
from .codec import decode
from .models import ContractCall, Operation, Payment, TransactionOutcome, TransactionStatus, UnsignedTransaction
from .poller import FinalityPoller
from .rpc import EndpointClient
from .simulate import SimulationFailure, SimulationResult, assemble, simulate

logger = logging.getLogger(__name__)

_FATAL = (ConfigurationError, CodecError)


def _outcome_from_error(exc: SenteError) -> TransactionOutcome:
    if isinstance(exc, SignerError) and exc.reason is SignerFailure.CANCELLED:
        return TransactionOutcome.cancelled(str(exc), error=exc)
    return TransactionOutcome.failed(str(exc), error=exc, tx_hash=getattr(exc, "tx_hash", None))


class InvocationPipeline:
    """Runs contract calls and payments against one network."""

    def __init__(
        self,
        endpoints: EndpointClient,
        gateway: Optional[SignerGateway],
        network: NetworkConfig,
        settings: Optional[PipelineSettings] = None,
        poller: Optional[FinalityPoller] = None,
    ) -> None:
        self.endpoints = endpoints
        self.gateway = gateway
        self.network = network
        self.settings = settings or PipelineSettings()
        self.poller = poller or FinalityPoller(
            endpoints.execution,
            poll_interval_ms=self.settings.poll_interval_ms,
            max_wait_ms=self.settings.max_wait_ms,
        )

    def build(
        self,
        source: str,
        operation: Operation,
        fee: int,
        memo: Optional[str] = None,
    ) -> UnsignedTransaction:
        # Fresh snapshot per build: a snapshot is good for one transaction only
        snapshot = self.endpoints.ledger.load_account(source)
        return build_transaction(
            snapshot,
            operation,
            fee=fee,
            network_passphrase=self.network.network_passphrase,
            memo=memo,
            timeout_seconds=self.settings.timeout_seconds,
        )

    def simulate(self, source: str, call: ContractCall) -> SimulationResult:
        unsigned = self.build(source, call, fee=self.settings.contract_fee)
        return simulate(self.endpoints.execution, unsigned)

    def _require_gateway(self) -> SignerGateway:
        if self.gateway is None:
            raise ConfigurationError("No signer configured; cannot run state-changing operations")
        return self.gateway

    def read(self, source: str, call: ContractCall) -> TransactionOutcome:
        """
        Evaluate a read-only call by simulation alone.

        The simulated return value is the answer.  Nothing is signed or
        submitted, so this is safe to repeat.
        """
        try:
            result = self.simulate(source, call)
        except _FATAL:
            raise
        except SenteError as exc:
            logger.debug("read %s.%s failed: %s", call.contract_id, call.function_name, exc)
            return _outcome_from_error(exc)

        if isinstance(result, SimulationFailure):
            error = result.to_error()
            return TransactionOutcome.failed(str(error), error=error)

        value = decode(result.return_value) if result.return_value is not None else None
        return TransactionOutcome.success(value=value)

    def invoke(
        self,
        source: str,
        call: ContractCall,
        memo: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
        max_wait_ms: Optional[int] = None,
    ) -> TransactionOutcome:
        """
        Run a state-changing contract call through the full pipeline.

        Args:
            source: Public key of the invoking (and signing) account
            call: Contract, function and encoded arguments
            memo: Optional text memo
            cancel: Set to abandon the signer wait or the poll loop
            max_wait_ms: Override the configured finality deadline

        Returns:
            TransactionOutcome; Failed/Cancelled/TimedOut keep the stage error
            in ``outcome.error``
        """
        gateway = self._require_gateway()
        try:
            unsigned = self.build(source, call, fee=self.settings.contract_fee, memo=memo)
            logger.debug("simulating %s.%s", call.contract_id, call.function_name)
            result = simulate(self.endpoints.execution, unsigned)
            if isinstance(result, SimulationFailure):
                # Never assemble or submit after a failed dry run
                error = result.to_error()
                return TransactionOutcome.failed(str(error), error=error)

            assemble(unsigned, result)
            logger.debug("requesting signature for %s", unsigned.tx_hash)
            signed = gateway.sign(unsigned, cancel=cancel)
            handle = self.poller.submit(signed)
        except _FATAL:
            raise
        except SenteError as exc:
            logger.debug("invoke %s.%s stopped: %s", call.contract_id, call.function_name, exc)
            return _outcome_from_error(exc)

        logger.debug("submitted %s, waiting for finality", handle.tx_hash)
        try:
            return self.poller.await_outcome(handle, max_wait_ms=max_wait_ms, cancel=cancel)
        except _FATAL:
            raise
        except EndpointError as exc:
            return TransactionOutcome.failed(
                f"Lost contact while waiting for {handle.tx_hash}; it may still finalize: {exc}",
                error=exc,
                tx_hash=handle.tx_hash,
            )

    def pay(
        self,
        source: str,
        destination: str,
        amount: int,
        memo: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionOutcome:
        """Send a native payment (amount in stroops) through the ledger endpoint."""
        gateway = self._require_gateway()
        try:
            unsigned = self.build(
                source,
                Payment(destination=destination, amount=amount),
                fee=self.settings.base_fee,
                memo=memo,
            )
            signed = gateway.sign(unsigned, cancel=cancel)
            logger.debug("submitting payment %s to ledger endpoint", signed.tx_hash)
            receipt = self.endpoints.ledger.submit_raw_transaction(signed.envelope_xdr)
        except _FATAL:
            raise
        except SenteError as exc:
            return _outcome_from_error(exc)

        tx_hash = receipt.get("hash", signed.tx_hash)
        if receipt.get("successful", True):
            return TransactionOutcome.success(tx_hash=tx_hash)
        return TransactionOutcome.failed(
            f"Payment failed: {receipt.get('result_xdr', 'unsuccessful')}",
            tx_hash=tx_hash,
            endpoint_status="FAILED",
        )

    def status(self, tx_hash: str) -> TransactionStatus:
        """Re-query a submission once (follow-up after a timeout)."""
        return self.poller.status(tx_hash)
