"""
Network and pipeline configuration.

Values come from the environment, optionally seeded from ~/.sente/.env.
Explicit arguments always win over environment variables, which win over
the built-in network table.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError


# Default config directory
SENTE_DIR = Path.home() / ".sente"
SENTE_ENV = SENTE_DIR / ".env"

BASE_FEE = 100  # stroops, classic operations
CONTRACT_FEE = 100_000  # stroops, before the simulated resource fee
DEFAULT_TX_TIMEOUT = 180  # seconds
DEFAULT_POLL_INTERVAL_MS = 1000
DEFAULT_MAX_WAIT_MS = 60_000
MAX_WAIT_CEILING_MS = 300_000


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    network_passphrase: str
    horizon_url: str
    soroban_rpc_url: str
    friendbot_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        return "Stellar Testnet" if self.name == "testnet" else "Stellar Mainnet"


TESTNET = NetworkConfig(
    name="testnet",
    network_passphrase="Test SDF Network ; September 2015",
    horizon_url="https://horizon-testnet.stellar.org",
    soroban_rpc_url="https://soroban-testnet.stellar.org",
    friendbot_url="https://friendbot.stellar.org",
)

MAINNET = NetworkConfig(
    name="mainnet",
    network_passphrase="Public Global Stellar Network ; September 2015",
    horizon_url="https://horizon.stellar.org",
    soroban_rpc_url="https://soroban-rpc.stellar.org",
)

NETWORKS: dict[str, NetworkConfig] = {"testnet": TESTNET, "mainnet": MAINNET}


def load_env(env_path: Optional[Path] = None) -> None:
    """Load ~/.sente/.env (or env_path) into the process environment if present.

    Variables already set in the environment are left untouched.
    """
    env_path = env_path or SENTE_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)


def get_network(name: Optional[str] = None) -> NetworkConfig:
    """Resolve the active network.

    Priority: name argument > SENTE_NETWORK > testnet.  HORIZON_URL and
    SOROBAN_RPC_URL override the endpoint URLs of the chosen network.
    """
    name = (name or os.environ.get("SENTE_NETWORK") or "testnet").lower()
    try:
        network = NETWORKS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown network '{name}'. Expected one of: {', '.join(sorted(NETWORKS))}"
        ) from None

    horizon = os.environ.get("HORIZON_URL")
    rpc = os.environ.get("SOROBAN_RPC_URL")
    if horizon:
        network = replace(network, horizon_url=horizon)
    if rpc:
        network = replace(network, soroban_rpc_url=rpc)
    return network


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class PipelineSettings:
    """Fees, expiration and polling knobs for one pipeline."""

    base_fee: int = BASE_FEE
    contract_fee: int = CONTRACT_FEE
    timeout_seconds: int = DEFAULT_TX_TIMEOUT
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    max_wait_ms: int = DEFAULT_MAX_WAIT_MS

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        return cls(
            contract_fee=_env_int("SENTE_CONTRACT_FEE", CONTRACT_FEE),
            timeout_seconds=_env_int("SENTE_TX_TIMEOUT", DEFAULT_TX_TIMEOUT),
            poll_interval_ms=_env_int("SENTE_POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL_MS),
            max_wait_ms=_env_int("SENTE_MAX_WAIT_MS", DEFAULT_MAX_WAIT_MS),
        )
