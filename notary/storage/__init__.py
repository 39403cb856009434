# notary/storage/__init__.py
"""
Registry backends: the external append-only store of signed document records.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from notary.core.types import DocumentDigest, SignedRecord, TransactionReceipt


class RegistryBackend(ABC):
    """
    Abstract base for every ledger the notary can write to.
    Mirrors the registry contract's interface one-to-one.
    """

    @abstractmethod
    async def get_document_count(self) -> int:
        pass

    @abstractmethod
    async def get_document_hash_by_index(self, index: int) -> DocumentDigest:
        """Raises IndexOutOfRangeError when index >= count."""

    @abstractmethod
    async def get_document_info(self, digest: DocumentDigest) -> SignedRecord:
        """Raises DocumentNotFoundError when the digest was never stored."""

    @abstractmethod
    async def is_document_stored(self, digest: DocumentDigest) -> bool:
        pass

    @abstractmethod
    async def store_document_hash(
        self,
        digest: DocumentDigest,
        timestamp: int,
        signature: bytes,
        signer: str,
    ) -> TransactionReceipt:
        """Append one record. Raises DuplicateDocumentError if the digest exists."""

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def create_registry(uri: str, contract_address: Optional[str] = None) -> RegistryBackend:
    """
    memory://                    → InMemoryRegistry
    sqlite:///path/to/db         → SQLiteRegistry
    http(s)://host:port          → EthereumRegistry (needs contract_address)
    anything else non-empty      → treated as a plain SQLite file path
    """
    stripped = (uri or "").strip()
    if not stripped:
        raise ValueError("Registry URI is empty")

    if stripped.startswith("memory:"):
        from .memory import InMemoryRegistry
        return InMemoryRegistry()

    if stripped.startswith("sqlite://"):
        from .sqlite import SQLiteRegistry
        raw_path = stripped[len("sqlite://"):]
        if raw_path.startswith("//"):
            raw_path = raw_path[1:]
        return SQLiteRegistry(Path(raw_path).expanduser().resolve())

    if stripped.startswith(("http://", "https://")):
        if not contract_address:
            raise ValueError("A contract address is required for an RPC registry")
        from .contract import EthereumRegistry
        return EthereumRegistry(stripped, contract_address)

    if "://" in stripped:
        raise ValueError(f"Unsupported registry URI: {uri}")

    from .sqlite import SQLiteRegistry
    return SQLiteRegistry(Path(stripped).expanduser().resolve())


from .memory import InMemoryRegistry
from .sqlite import SQLiteRegistry

__all__ = ["RegistryBackend", "create_registry", "InMemoryRegistry", "SQLiteRegistry"]
