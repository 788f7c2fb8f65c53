from __future__ import annotations

import threading
from typing import Optional

from ..ledger.models import TransactionOutcome
from ..registry import TOKEN_CONTRACT
from ..utils import DEFAULT_DECIMALS
from ..wallet.session import WalletSession
from .base import ContractFacade, address, i128

FAUCET_AMOUNT = 100_000_000  # 100 tokens at 6 decimals
CLAIM_COOLDOWN = 86_400  # seconds between faucet claims


class SenteToken(ContractFacade):
    """The SENTE token contract.

    Amounts are integers in the smallest unit; use ``utils.format_amount``
    for display.
    """

    contract_name = TOKEN_CONTRACT

    # -- reads (simulation only) -------------------------------------------

    def name(self, session: WalletSession) -> str:
        return self._read(session, "name", fallback="Unknown")

    def symbol(self, session: WalletSession) -> str:
        return self._read(session, "symbol", fallback="UNK")

    def decimals(self, session: WalletSession) -> int:
        return self._read(session, "decimals", fallback=DEFAULT_DECIMALS)

    def total_supply(self, session: WalletSession) -> int:
        return self._read(session, "total_supply", fallback=0)

    def balance(self, session: WalletSession, account: Optional[str] = None) -> int:
        account = account or session.require_public_key()
        return self._read(session, "balance", address(account), fallback=0)

    def allowance(self, session: WalletSession, spender: str, owner: Optional[str] = None) -> int:
        owner = owner or session.require_public_key()
        return self._read(session, "allowance", address(owner), address(spender), fallback=0)

    def can_claim_faucet(self, session: WalletSession, account: Optional[str] = None) -> bool:
        account = account or session.require_public_key()
        return self._read(session, "can_claim_faucet", address(account), fallback=False)

    # -- writes (full pipeline) --------------------------------------------

    def transfer(
        self,
        session: WalletSession,
        to: str,
        amount: int,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionOutcome:
        sender = session.require_public_key()
        return self._write(session, "transfer", address(sender), address(to), i128(amount), cancel=cancel)

    def approve(
        self,
        session: WalletSession,
        spender: str,
        amount: int,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionOutcome:
        owner = session.require_public_key()
        return self._write(session, "approve", address(owner), address(spender), i128(amount), cancel=cancel)

    def transfer_from(
        self,
        session: WalletSession,
        owner: str,
        to: str,
        amount: int,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionOutcome:
        spender = session.require_public_key()
        return self._write(
            session,
            "transfer_from",
            address(spender),
            address(owner),
            address(to),
            i128(amount),
            cancel=cancel,
        )

    def claim_faucet(self, session: WalletSession, cancel: Optional[threading.Event] = None) -> TransactionOutcome:
        """Mint FAUCET_AMOUNT to the session account, at most once per cooldown.

        A claim inside the cooldown fails in simulation ("Please wait 24
        hours between claims") and is not retried.
        """
        claimer = session.require_public_key()
        return self._write(session, "claim_faucet", address(claimer), cancel=cancel)
