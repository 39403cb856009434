# notary/storage/memory.py
import hashlib
from typing import Dict, List

from notary.core.errors import DocumentNotFoundError, DuplicateDocumentError, IndexOutOfRangeError
from notary.core.types import DocumentDigest, SignedRecord, TransactionReceipt
from . import RegistryBackend


class InMemoryRegistry(RegistryBackend):
    """Process-local registry. Same semantics as the durable backends, no persistence."""

    def __init__(self):
        self._order: List[DocumentDigest] = []
        self._records: Dict[DocumentDigest, SignedRecord] = {}

    async def get_document_count(self) -> int:
        return len(self._order)

    async def get_document_hash_by_index(self, index: int) -> DocumentDigest:
        if not 0 <= index < len(self._order):
            raise IndexOutOfRangeError(f"No document at index {index}", {"count": len(self._order)})
        return self._order[index]

    async def get_document_info(self, digest: DocumentDigest) -> SignedRecord:
        try:
            return self._records[digest]
        except KeyError:
            raise DocumentNotFoundError(f"Document {digest.hex} not found") from None

    async def is_document_stored(self, digest: DocumentDigest) -> bool:
        return digest in self._records

    async def store_document_hash(
        self,
        digest: DocumentDigest,
        timestamp: int,
        signature: bytes,
        signer: str,
    ) -> TransactionReceipt:
        if digest in self._records:
            raise DuplicateDocumentError(f"Document {digest.hex} already registered")
        record = SignedRecord(digest=digest, signer=signer, timestamp=timestamp, signature=signature)
        self._records[digest] = record
        self._order.append(digest)
        tx_id = "0x" + hashlib.sha256(digest.value + len(self._order).to_bytes(8, "big")).hexdigest()
        return TransactionReceipt(transaction_id=tx_id, digest=digest, block_number=len(self._order))
