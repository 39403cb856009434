# notary/storage/client.py
import logging
from typing import AsyncIterator, List, Optional, Tuple, Union

from notary.core.encoding import canonical_address
from notary.core.errors import (
    ConnectivityError,
    DocumentNotFoundError,
    DuplicateDocumentError,
    IndexOutOfRangeError,
    InputError,
    StorageError,
)
from notary.core.types import UINT64_MAX, DocumentDigest, SignedRecord, TransactionReceipt
from . import RegistryBackend

logger = logging.getLogger(__name__)

DigestLike = Union[DocumentDigest, str, bytes]


class RegistryClient:
    """
    Typed façade over a registry backend.

    - absent documents come back from ``lookup`` as None, never as an exception
    - ``exists(d)`` is True exactly when ``lookup(d)`` returns a record
    - a digest may be appended once; a second append raises DuplicateDocumentError
    """

    def __init__(self, backend: RegistryBackend):
        self.backend = backend

    async def count(self) -> int:
        return await self.backend.get_document_count()

    async def record_at_index(self, index: int) -> DocumentDigest:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise IndexOutOfRangeError(f"No document at index {index!r}")
        return await self.backend.get_document_hash_by_index(index)

    async def lookup(self, digest: DigestLike) -> Optional[SignedRecord]:
        digest = DocumentDigest.coerce(digest)
        try:
            return await self.backend.get_document_info(digest)
        except DocumentNotFoundError:
            return None

    async def exists(self, digest: DigestLike) -> bool:
        return await self.backend.is_document_stored(DocumentDigest.coerce(digest))

    async def append(
        self,
        digest: DigestLike,
        signer: str,
        timestamp: int,
        signature: bytes,
    ) -> TransactionReceipt:
        digest = DocumentDigest.coerce(digest)
        signer = canonical_address(signer)
        if isinstance(timestamp, bool) or not isinstance(timestamp, int) or not 0 <= timestamp <= UINT64_MAX:
            raise InputError(f"Timestamp must be an unsigned 64-bit integer, got {timestamp!r}")
        if not signature:
            raise InputError("Signature is empty")

        # connectivity failures on the write path surface as StorageError
        try:
            if await self.backend.is_document_stored(digest):
                raise DuplicateDocumentError(
                    f"Document {digest.hex} already registered", {"digest": digest.hex}
                )
            receipt = await self.backend.store_document_hash(digest, timestamp, bytes(signature), signer)
        except ConnectivityError as e:
            raise StorageError(
                f"Failed to store {digest.hex}: {e.message}", {"digest": digest.hex, "cause": e.reason}
            ) from e

        logger.info("Appended %s by %s (tx %s)", digest.hex, signer, receipt.transaction_id)
        return receipt

    async def iter_records(self) -> AsyncIterator[Tuple[int, SignedRecord]]:
        """
        Walk the registry in insertion order: one count, then index + lookup per
        position. The registry may change underneath; records appended after the
        count are not visited and a shrinking count ends the walk early.
        """
        total = await self.count()
        for i in range(total):
            try:
                digest = await self.record_at_index(i)
            except IndexOutOfRangeError:
                logger.warning("Registry shrank during enumeration (stopped at %d of %d)", i, total)
                return
            record = await self.lookup(digest)
            if record is None:
                logger.warning("Digest %s at index %d has no record; skipping", digest.hex, i)
                continue
            yield i, record

    async def list_records(self, limit: Optional[int] = None) -> List[SignedRecord]:
        records = []
        async for _, record in self.iter_records():
            records.append(record)
            if limit is not None and len(records) >= limit:
                break
        return records

    async def close(self) -> None:
        await self.backend.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
