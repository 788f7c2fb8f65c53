"""
Contract address registry.

The deployment flow leaves a small JSON record behind:

    {"network": "testnet",
     "contracts": {"SenteToken": "C...", "SenteVault": "C..."},
     "deployer": "G...",
     "timestamp": "2026-01-01T00:00:00Z"}

It is read once at startup.  A contract missing from the record is a
configuration error, never a pipeline failure.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import jsonschema
from jsonschema import FormatChecker

from .config import SENTE_DIR
from .errors import ConfigurationError
from .utils import utc_now_rfc3339

TOKEN_CONTRACT = "SenteToken"
VAULT_CONTRACT = "SenteVault"

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "deployment.schema.json"


class RecordInvalidError(ConfigurationError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


@lru_cache(maxsize=1)
def _validator() -> jsonschema.Validator:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        schema = json.load(f)
    validator_cls = jsonschema.validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema, format_checker=FormatChecker())


def _format_error(error: jsonschema.ValidationError) -> str:
    location = "/".join(str(part) for part in error.path) or "<root>"
    return f"{location}: {error.message}"


def validate_record(payload: dict[str, Any]) -> None:
    errors = sorted(_validator().iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        formatted = [_format_error(err) for err in errors]
        raise RecordInvalidError(
            "Deployment record failed validation: " + "; ".join(formatted),
            errors=formatted,
        )


@dataclass(frozen=True)
class DeploymentRecord:
    network: str
    contracts: dict[str, str] = field(default_factory=dict)
    deployer: Optional[str] = None
    timestamp: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "DeploymentRecord":
        validate_record(payload)
        return cls(
            network=payload["network"],
            contracts=dict(payload["contracts"]),
            deployer=payload.get("deployer"),
            timestamp=payload.get("timestamp"),
        )

    @classmethod
    def from_path(cls, path: Path) -> "DeploymentRecord":
        try:
            with path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
        except json.JSONDecodeError as exc:
            raise RecordInvalidError(f"Deployment record {path} is not valid JSON: {exc}") from exc
        return cls.from_dict(payload)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "network": self.network,
            "contracts": dict(self.contracts),
        }
        if self.deployer:
            result["deployer"] = self.deployer
        if self.timestamp:
            result["timestamp"] = self.timestamp
        return result

    def with_contract(self, name: str, address: str) -> "DeploymentRecord":
        contracts = dict(self.contracts)
        contracts[name] = address
        return DeploymentRecord(
            network=self.network,
            contracts=contracts,
            deployer=self.deployer,
            timestamp=utc_now_rfc3339(),
        )

    def write(self, path: Path) -> None:
        payload = self.to_dict()
        validate_record(payload)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True)
            f.write("\n")
        load_deployment.cache_clear()


def find_deployment_record(start: Optional[Path] = None) -> Path:
    """
    Locate the deployment record.

    Order: $SENTE_CONTRACTS, then config/contracts.json in the working
    directory or any parent, then ~/.sente/contracts.json.
    """
    explicit = os.environ.get("SENTE_CONTRACTS")
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"SENTE_CONTRACTS points to a missing file: {path}")
        return path

    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / "config" / "contracts.json"
        if candidate.is_file():
            return candidate

    fallback = SENTE_DIR / "contracts.json"
    if fallback.is_file():
        return fallback

    raise ConfigurationError(
        "No deployment record found. Deploy the contracts first, set "
        "SENTE_CONTRACTS, or run 'sente contracts register'."
    )


@lru_cache(maxsize=8)
def load_deployment(path: str) -> DeploymentRecord:
    return DeploymentRecord.from_path(Path(path))


class ContractRegistry:
    """Logical contract name -> on-ledger contract address."""

    def __init__(self, record: DeploymentRecord) -> None:
        self.record = record

    @classmethod
    def load(cls, path: Optional[Path] = None, network: Optional[str] = None) -> "ContractRegistry":
        resolved = path or find_deployment_record()
        record = load_deployment(str(resolved))
        if network is not None and record.network != network:
            raise ConfigurationError(
                f"Deployment record {resolved} is for {record.network}, "
                f"but the active network is {network}"
            )
        return cls(record)

    @property
    def network(self) -> str:
        return self.record.network

    def names(self) -> list[str]:
        return sorted(self.record.contracts)

    def address_of(self, name: str) -> str:
        address = self.record.contracts.get(name)
        if not address:
            raise ConfigurationError(
                f"{name} contract not deployed. Please deploy contracts first."
            )
        return address
