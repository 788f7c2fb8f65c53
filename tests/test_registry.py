"""Deployment record validation and contract address lookup."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from stellar_sdk import Keypair, StrKey

from sente.errors import ConfigurationError
from sente.registry import (
    ContractRegistry,
    DeploymentRecord,
    RecordInvalidError,
    find_deployment_record,
    load_deployment,
)

TOKEN_ID = StrKey.encode_contract(bytes([1] * 32))
VAULT_ID = StrKey.encode_contract(bytes([2] * 32))


@pytest.fixture(autouse=True)
def _isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.delenv("SENTE_CONTRACTS", raising=False)
    monkeypatch.setattr("sente.registry.SENTE_DIR", tmp_path / "home" / ".sente")
    load_deployment.cache_clear()
    yield
    load_deployment.cache_clear()


def _write(path: Path, payload: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestValidation:
    def test_valid_record(self) -> None:
        record = DeploymentRecord.from_dict(
            {
                "network": "testnet",
                "contracts": {"SenteToken": TOKEN_ID, "SenteVault": VAULT_ID},
                "deployer": Keypair.random().public_key,
                "timestamp": "2026-01-01T00:00:00Z",
            }
        )
        assert record.contracts["SenteVault"] == VAULT_ID

    @pytest.mark.parametrize(
        "payload",
        [
            {"contracts": {"SenteToken": TOKEN_ID}},
            {"network": "devnet", "contracts": {"SenteToken": TOKEN_ID}},
            {"network": "testnet", "contracts": {}},
            {"network": "testnet", "contracts": {"SenteToken": "GABC"}},
        ],
    )
    def test_invalid_records(self, payload: dict) -> None:
        with pytest.raises(RecordInvalidError) as exc_info:
            DeploymentRecord.from_dict(payload)
        assert exc_info.value.errors

    def test_not_json(self, tmp_path: Path) -> None:
        path = tmp_path / "contracts.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(RecordInvalidError):
            DeploymentRecord.from_path(path)


class TestRegistry:
    def test_address_of(self, registry: ContractRegistry) -> None:
        assert registry.address_of("SenteToken") == TOKEN_ID
        assert registry.names() == ["SenteToken", "SenteVault"]

    def test_missing_contract_is_configuration_error(self) -> None:
        registry = ContractRegistry(DeploymentRecord("testnet", {"SenteToken": TOKEN_ID}))
        with pytest.raises(ConfigurationError, match="SenteVault contract not deployed"):
            registry.address_of("SenteVault")

    def test_network_mismatch(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "contracts.json", {"network": "mainnet", "contracts": {"SenteToken": TOKEN_ID}})
        with pytest.raises(ConfigurationError, match="mainnet"):
            ContractRegistry.load(path, network="testnet")

    def test_write_and_reload(self, tmp_path: Path) -> None:
        path = tmp_path / "config" / "contracts.json"
        DeploymentRecord("testnet", {"SenteToken": TOKEN_ID}).with_contract("SenteVault", VAULT_ID).write(path)

        registry = ContractRegistry.load(path, network="testnet")
        assert registry.address_of("SenteVault") == VAULT_ID
        assert registry.record.timestamp is not None

    def test_write_refuses_invalid(self, tmp_path: Path) -> None:
        path = tmp_path / "contracts.json"
        with pytest.raises(RecordInvalidError):
            DeploymentRecord("testnet", {"SenteToken": "nope"}).write(path)
        assert not path.exists()


class TestFindDeploymentRecord:
    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path / "elsewhere.json", {"network": "testnet", "contracts": {"SenteToken": TOKEN_ID}})
        monkeypatch.setenv("SENTE_CONTRACTS", str(path))
        assert find_deployment_record() == path

    def test_env_override_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SENTE_CONTRACTS", str(tmp_path / "missing.json"))
        with pytest.raises(ConfigurationError):
            find_deployment_record()

    def test_walks_up_to_config_dir(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "config" / "contracts.json", {"network": "testnet", "contracts": {"SenteToken": TOKEN_ID}})
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_deployment_record(nested) == path.resolve()

    def test_nothing_found(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="No deployment record found"):
            find_deployment_record(tmp_path)
