from __future__ import annotations

import threading
from typing import Optional

from ..ledger.models import TransactionOutcome
from ..registry import VAULT_CONTRACT
from ..wallet.session import WalletSession
from .base import ContractFacade, address, i128, u32

MIN_LOCK_DAYS = 1
MAX_LOCK_DAYS = 365


class SenteVault(ContractFacade):
    """The SENTE vault: a spendable balance plus time-locked savings."""

    contract_name = VAULT_CONTRACT

    def _account(self, session: WalletSession, account: Optional[str]) -> str:
        return account or session.require_public_key()

    # -- reads -------------------------------------------------------------

    def balance(self, session: WalletSession, account: Optional[str] = None) -> int:
        return self._read(session, "balance", address(self._account(session, account)), fallback=0)

    def savings_balance(self, session: WalletSession, account: Optional[str] = None) -> int:
        return self._read(session, "savings_balance", address(self._account(session, account)), fallback=0)

    def total_balance(self, session: WalletSession, account: Optional[str] = None) -> int:
        return self._read(session, "total_balance", address(self._account(session, account)), fallback=0)

    def unlock_time(self, session: WalletSession, account: Optional[str] = None) -> int:
        """Ledger sequence at which savings unlock (0 if nothing is locked)."""
        return self._read(session, "unlock_time", address(self._account(session, account)), fallback=0)

    def token_contract(self, session: WalletSession) -> Optional[str]:
        return self._read(session, "token_contract", fallback=None)

    # -- writes ------------------------------------------------------------

    def deposit(self, session: WalletSession, amount: int, cancel: Optional[threading.Event] = None) -> TransactionOutcome:
        user = session.require_public_key()
        return self._write(session, "deposit", address(user), i128(amount), cancel=cancel)

    def withdraw(self, session: WalletSession, amount: int, cancel: Optional[threading.Event] = None) -> TransactionOutcome:
        user = session.require_public_key()
        return self._write(session, "withdraw", address(user), i128(amount), cancel=cancel)

    def transfer(
        self,
        session: WalletSession,
        to: str,
        amount: int,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionOutcome:
        sender = session.require_public_key()
        return self._write(session, "transfer", address(sender), address(to), i128(amount), cancel=cancel)

    def save_to_vault(
        self,
        session: WalletSession,
        amount: int,
        lock_days: int,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionOutcome:
        """Move ``amount`` into savings, locked for ``lock_days`` (1-365)."""
        user = session.require_public_key()
        return self._write(session, "save_to_vault", address(user), i128(amount), u32(lock_days), cancel=cancel)

    def withdraw_from_vault(
        self,
        session: WalletSession,
        amount: int,
        cancel: Optional[threading.Event] = None,
    ) -> TransactionOutcome:
        user = session.require_public_key()
        return self._write(session, "withdraw_from_vault", address(user), i128(amount), cancel=cancel)
