# notary/config.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from notary.crypto.keys import DEFAULT_ACCOUNT_COUNT, DEFAULT_SELECT_INDEX

DEFAULT_RPC_URL = "http://localhost:8545"


def default_db_path() -> Path:
    """Resolve the local registry path:
    1. NOTARY_DB_PATH environment variable
    2. Default: ~/.notary/registry.db
    """
    env_path = os.environ.get("NOTARY_DB_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path.home() / ".notary" / "registry.db"


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class Settings:
    mnemonic: Optional[str] = field(default=None, repr=False)
    registry: Optional[str] = None          # registry URI; None → local SQLite file
    rpc_url: str = DEFAULT_RPC_URL
    contract_address: Optional[str] = None
    account_count: int = DEFAULT_ACCOUNT_COUNT
    default_account: int = DEFAULT_SELECT_INDEX

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            mnemonic=os.environ.get("NOTARY_MNEMONIC") or None,
            registry=os.environ.get("NOTARY_REGISTRY") or None,
            rpc_url=os.environ.get("NOTARY_RPC_URL") or DEFAULT_RPC_URL,
            contract_address=os.environ.get("NOTARY_CONTRACT_ADDRESS") or None,
            account_count=_int_env("NOTARY_ACCOUNT_COUNT", DEFAULT_ACCOUNT_COUNT),
            default_account=_int_env("NOTARY_DEFAULT_ACCOUNT", DEFAULT_SELECT_INDEX),
        )

    def registry_uri(self) -> str:
        """
        Explicit registry URI wins; a configured contract address alone means the
        RPC registry; otherwise the local SQLite file.
        """
        if self.registry:
            return self.registry
        if self.contract_address:
            return self.rpc_url
        return f"sqlite://{default_db_path()}"
