# tests/test_config.py
from pathlib import Path

import pytest

from notary.config import DEFAULT_RPC_URL, Settings, default_db_path

ENV_VARS = (
    "NOTARY_MNEMONIC", "NOTARY_REGISTRY", "NOTARY_RPC_URL", "NOTARY_CONTRACT_ADDRESS",
    "NOTARY_ACCOUNT_COUNT", "NOTARY_DEFAULT_ACCOUNT", "NOTARY_DB_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env()
    assert settings.mnemonic is None
    assert settings.rpc_url == DEFAULT_RPC_URL
    assert settings.account_count == 20
    assert settings.default_account == 1
    assert settings.registry_uri() == f"sqlite://{Path.home() / '.notary' / 'registry.db'}"


def test_env_overrides(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("NOTARY_MNEMONIC", "secret words here")
    monkeypatch.setenv("NOTARY_ACCOUNT_COUNT", "7")
    monkeypatch.setenv("NOTARY_DEFAULT_ACCOUNT", "3")
    monkeypatch.setenv("NOTARY_DB_PATH", str(tmp_path / "x.db"))

    settings = Settings.from_env()
    assert settings.account_count == 7
    assert settings.default_account == 3
    assert default_db_path() == (tmp_path / "x.db").resolve()
    assert settings.registry_uri() == f"sqlite://{(tmp_path / 'x.db').resolve()}"


def test_mnemonic_hidden_from_repr(monkeypatch):
    monkeypatch.setenv("NOTARY_MNEMONIC", "secret words here")
    assert "secret" not in repr(Settings.from_env())


def test_contract_address_selects_rpc_registry(monkeypatch):
    monkeypatch.setenv("NOTARY_CONTRACT_ADDRESS", "0x5FbDB2315678afecb367f032d93F642f64180aa3")
    monkeypatch.setenv("NOTARY_RPC_URL", "http://anvil:8545")
    assert Settings.from_env().registry_uri() == "http://anvil:8545"

    monkeypatch.setenv("NOTARY_REGISTRY", "memory://")
    assert Settings.from_env().registry_uri() == "memory://"


def test_bad_integer(monkeypatch):
    monkeypatch.setenv("NOTARY_ACCOUNT_COUNT", "many")
    with pytest.raises(ValueError, match="NOTARY_ACCOUNT_COUNT"):
        Settings.from_env()
