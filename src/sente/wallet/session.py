"""
Wallet Session - the connected account and network, as an explicit object.

Lifecycle:

    DISCONNECTED -> CONNECTING -> ACTIVE -> DISCONNECTED
                    CONNECTING -> DISCONNECTED     (access refused / signer missing)

External signers have no change notifications, so ``watch()`` polls them on
an interval and hands back a ``Subscription`` the caller must cancel.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from ..config import NetworkConfig
from ..errors import EndpointError, SessionError, SignerError, SignerFailure
from ..ledger.rpc import fund_testnet_account
from .signer import ExternalSignerError, Signer, map_signer_exception

logger = logging.getLogger(__name__)

DEFAULT_WATCH_INTERVAL = 2.0  # seconds


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    ACTIVE = "active"


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.DISCONNECTED: frozenset({SessionState.CONNECTING}),
    SessionState.CONNECTING: frozenset({SessionState.ACTIVE, SessionState.DISCONNECTED}),
    SessionState.ACTIVE: frozenset({SessionState.DISCONNECTED}),
}


class WalletSession:
    """Who is signing, and on which network."""

    def __init__(
        self,
        signer: Signer,
        network: NetworkConfig,
        funder: Callable[[str, str], object] = fund_testnet_account,
    ) -> None:
        self.signer = signer
        self.network = network
        self._funder = funder
        self._state = SessionState.DISCONNECTED
        self._public_key: Optional[str] = None
        self._signer_network: Optional[str] = None
        self._lock = threading.RLock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def public_key(self) -> Optional[str]:
        return self._public_key

    @property
    def signer_network(self) -> Optional[str]:
        return self._signer_network

    @property
    def network_matches(self) -> bool:
        return self._signer_network in (None, self.network.network_passphrase)

    def require_public_key(self) -> str:
        """Public key of the active session, for use as a transaction source."""
        with self._lock:
            if self._state is not SessionState.ACTIVE or not self._public_key:
                raise SessionError("Wallet is not connected. Connect a signer first.")
            return self._public_key

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise SessionError(f"Cannot go from {self._state.value} to {target.value}")
        logger.debug("session %s -> %s", self._state.value, target.value)
        self._state = target

    def connect(self, fund: bool = False) -> str:
        """
        Request access from the signer and activate the session.

        Args:
            fund: On testnet, ask friendbot to fund the account

        Returns:
            The connected public key

        Raises:
            SessionError: If already connected or connecting
            SignerError: If the signer is missing, locked or refuses access
        """
        with self._lock:
            self._transition(SessionState.CONNECTING)
            try:
                if not self.signer.is_available():
                    raise SignerError(
                        SignerFailure.UNAVAILABLE,
                        "Signer is not installed or is locked",
                    )
                public_key = self.signer.request_access()
                if not public_key:
                    raise SignerError(SignerFailure.UNAVAILABLE, "Failed to connect to signer")
                signer_network = self._read_signer_network()
            except ExternalSignerError as exc:
                self._transition(SessionState.DISCONNECTED)
                raise map_signer_exception(exc) from exc
            except BaseException:
                # Whatever went wrong, never leave the session half-connected
                self._transition(SessionState.DISCONNECTED)
                raise

            self._public_key = public_key
            self._signer_network = signer_network
            self._transition(SessionState.ACTIVE)

        if not self.network_matches:
            logger.warning(
                "Signer is on '%s', but %s expects '%s'",
                self._signer_network,
                self.network.display_name,
                self.network.network_passphrase,
            )

        if fund and self.network.friendbot_url:
            try:
                self._funder(self.network.friendbot_url, public_key)
                logger.info("Funded %s via friendbot", public_key)
            except EndpointError as exc:
                logger.info("Account might already be funded or friendbot failed: %s", exc)

        return public_key

    def disconnect(self) -> None:
        with self._lock:
            if self._state is SessionState.DISCONNECTED:
                return
            if self._state is SessionState.CONNECTING:
                raise SessionError("Cannot disconnect while a connection is in progress")
            self._transition(SessionState.DISCONNECTED)
            self._public_key = None

    def _read_signer_network(self) -> Optional[str]:
        try:
            return self.signer.get_network()
        except ExternalSignerError as exc:
            logger.warning("Could not get signer network: %s", exc)
            return None

    # -- change detection ---------------------------------------------------

    def _observe_account(self, public_key: Optional[str]) -> bool:
        """Apply an observed account; True if it differs from the current one."""
        with self._lock:
            if public_key == self._public_key:
                return False
            if public_key is None:
                if self._state is SessionState.ACTIVE:
                    self._transition(SessionState.DISCONNECTED)
            elif self._state is SessionState.DISCONNECTED:
                self._transition(SessionState.CONNECTING)
                self._transition(SessionState.ACTIVE)
            self._public_key = public_key
            return True

    def _observe_network(self, network: str) -> bool:
        with self._lock:
            if network == self._signer_network:
                return False
            self._signer_network = network
            return True

    def watch(
        self,
        interval: float = DEFAULT_WATCH_INTERVAL,
        on_account_change: Optional[Callable[[Optional[str]], None]] = None,
        on_network_change: Optional[Callable[[str], None]] = None,
        start: bool = True,
    ) -> "Subscription":
        """Poll the signer for account/network changes until cancelled."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        subscription = Subscription(self, interval, on_account_change, on_network_change)
        if start:
            subscription.start()
        return subscription


class Subscription:
    """Handle for a running ``WalletSession.watch``."""

    def __init__(
        self,
        session: WalletSession,
        interval: float,
        on_account_change: Optional[Callable[[Optional[str]], None]] = None,
        on_network_change: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.session = session
        self.interval = interval
        self.on_account_change = on_account_change
        self.on_network_change = on_network_change
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="sente-wallet-watch", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll_once()

    def poll_once(self) -> None:
        """Check the signer once and fire callbacks for anything that changed."""
        signer = self.session.signer

        try:
            public_key: Optional[str] = signer.get_public_key() or None
        except ExternalSignerError:
            # Locked wallet
            public_key = None
        if self.session._observe_account(public_key) and self.on_account_change:
            self.on_account_change(public_key)

        try:
            network = signer.get_network()
        except ExternalSignerError as exc:
            logger.debug("Error checking network: %s", exc)
            return
        if network and self.session._observe_network(network) and self.on_network_change:
            self.on_network_change(network)

    def cancel(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
