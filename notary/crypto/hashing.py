# notary/crypto/hashing.py
import asyncio
import hashlib
import logging
from pathlib import Path
from typing import BinaryIO, Union

from notary.core.errors import HashingError, MissingFileError
from notary.core.types import DocumentDigest

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def hash_bytes(data: bytes) -> DocumentDigest:
    """SHA-256 digest of an in-memory buffer."""
    return DocumentDigest(hashlib.sha256(data).digest())


def hash_stream(stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> DocumentDigest:
    """
    Incremental SHA-256 over a binary stream, read chunk by chunk so files larger
    than memory work. The digest is only returned after EOF; a read error aborts.
    """
    h = hashlib.sha256()
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            h.update(chunk)
    except OSError as e:
        raise HashingError(f"Read failed while hashing: {e}") from e
    return DocumentDigest(h.digest())


def hash_path(path: Union[str, Path], chunk_size: int = CHUNK_SIZE) -> DocumentDigest:
    path = Path(path)
    if not path.is_file():
        raise MissingFileError(f"File not found: {path}", {"path": str(path)})
    try:
        with open(path, "rb") as f:
            digest = hash_stream(f, chunk_size)
    except OSError as e:
        raise HashingError(f"Cannot read {path}: {e}", {"path": str(path)}) from e
    logger.debug("Hashed %s -> %s", path, digest.hex)
    return digest


async def hash_file(path: Union[str, Path], chunk_size: int = CHUNK_SIZE) -> DocumentDigest:
    """Hash a file without blocking the event loop."""
    return await asyncio.to_thread(hash_path, path, chunk_size)
