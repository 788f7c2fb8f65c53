"""
Shared plumbing for the typed contract facades.

A facade method encodes its arguments, hands one ``ContractCall`` to the
pipeline and decodes the answer.  Reads degrade to a fallback value and log
a warning; writes return the ``TransactionOutcome`` untouched.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from ..ledger.codec import ContractValue, ScType, encode
from ..ledger.models import ContractCall, TransactionOutcome
from ..ledger.pipeline import InvocationPipeline
from ..registry import ContractRegistry
from ..wallet.session import WalletSession

logger = logging.getLogger(__name__)


def address(value: str) -> ContractValue:
    return encode(value, ScType.ADDRESS)


def i128(value: int) -> ContractValue:
    return encode(value, ScType.I128)


def u32(value: int) -> ContractValue:
    return encode(value, ScType.U32)


class ContractFacade:
    """Base class: one deployed contract, looked up by logical name."""

    contract_name: str = ""

    def __init__(self, pipeline: InvocationPipeline, registry: ContractRegistry) -> None:
        self.pipeline = pipeline
        # Missing entry raises ConfigurationError here, before any call is made
        self.address = registry.address_of(self.contract_name)

    def _call(self, function: str, *args: ContractValue) -> ContractCall:
        return ContractCall(contract_id=self.address, function_name=function, args=tuple(args))

    def _read(self, session: WalletSession, function: str, *args: ContractValue, fallback: Any) -> Any:
        outcome = self.pipeline.read(session.require_public_key(), self._call(function, *args))
        if not outcome.ok or outcome.value is None:
            logger.warning(
                "%s.%s unavailable, using %r: %s",
                self.contract_name,
                function,
                fallback,
                outcome.diagnostic or "no return value",
            )
            return fallback
        return outcome.value

    def _write(
        self,
        session: WalletSession,
        function: str,
        *args: ContractValue,
        memo: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionOutcome:
        outcome = self.pipeline.invoke(
            session.require_public_key(),
            self._call(function, *args),
            memo=memo,
            cancel=cancel,
        )
        if not outcome.ok:
            logger.debug("%s.%s -> %s: %s", self.contract_name, function, outcome.status.value, outcome.diagnostic)
        return outcome
