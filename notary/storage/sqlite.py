# notary/storage/sqlite.py
import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Optional

import aiosqlite

from notary.config import default_db_path
from notary.core.canon import canonical_hash, canonical_json_str
from notary.core.encoding import hex_decode
from notary.core.errors import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    IndexOutOfRangeError,
    RegistryUnavailableError,
    StorageError,
)
from notary.core.types import DocumentDigest, SignedRecord, TransactionReceipt
from . import RegistryBackend

logger = logging.getLogger(__name__)


class SQLiteRegistry(RegistryBackend):
    """Durable local registry: one append-only table, insertion order = index."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path is not None else default_db_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_path.resolve()

        self._conn: Optional[aiosqlite.Connection] = None
        self._closed = False
        self._open_lock = asyncio.Lock()

    async def _connect(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn
        async with self._open_lock:
            if self._closed:
                raise RegistryUnavailableError(f"Registry {self.db_path} is closed")
            if self._conn is not None:
                return self._conn
            conn = None
            try:
                conn = await aiosqlite.connect(str(self.db_path), isolation_level=None)
                await conn.execute("PRAGMA journal_mode=WAL")
                await self._create_schema(conn)
            except sqlite3.Error as e:
                if conn is not None:
                    await conn.close()
                raise RegistryUnavailableError(f"Cannot open registry {self.db_path}: {e}") from e
            self._conn = conn
            logger.debug("Opened SQLite registry at %s", self.db_path)
            return conn

    async def _create_schema(self, conn: aiosqlite.Connection) -> None:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS records (
                position        INTEGER PRIMARY KEY AUTOINCREMENT,
                digest          TEXT    NOT NULL UNIQUE,
                signer          TEXT    NOT NULL,
                timestamp       INTEGER NOT NULL,
                signature       TEXT    NOT NULL,
                transaction_id  TEXT    NOT NULL,
                canonical_json  TEXT    NOT NULL
            )
        """)
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_signer ON records(signer)")

    async def _fetchone(self, sql: str, params: tuple = ()):
        conn = await self._connect()
        try:
            async with conn.execute(sql, params) as cursor:
                return await cursor.fetchone()
        except sqlite3.Error as e:
            raise RegistryUnavailableError(f"Registry read failed: {e}") from e

    async def get_document_count(self) -> int:
        row = await self._fetchone("SELECT COUNT(*) FROM records")
        return row[0]

    async def get_document_hash_by_index(self, index: int) -> DocumentDigest:
        if index < 0:
            raise IndexOutOfRangeError(f"No document at index {index}")
        row = await self._fetchone(
            "SELECT digest FROM records ORDER BY position ASC LIMIT 1 OFFSET ?", (index,)
        )
        if row is None:
            raise IndexOutOfRangeError(f"No document at index {index}")
        return DocumentDigest.from_hex(row[0])

    async def get_document_info(self, digest: DocumentDigest) -> SignedRecord:
        row = await self._fetchone(
            "SELECT signer, timestamp, signature FROM records WHERE digest = ?", (digest.hex,)
        )
        if row is None:
            raise DocumentNotFoundError(f"Document {digest.hex} not found")
        signer, ts, sig = row
        return SignedRecord(digest=digest, signer=signer, timestamp=ts, signature=hex_decode(sig))

    async def is_document_stored(self, digest: DocumentDigest) -> bool:
        row = await self._fetchone("SELECT 1 FROM records WHERE digest = ?", (digest.hex,))
        return row is not None

    async def store_document_hash(
        self,
        digest: DocumentDigest,
        timestamp: int,
        signature: bytes,
        signer: str,
    ) -> TransactionReceipt:
        record = SignedRecord(digest=digest, signer=signer, timestamp=timestamp, signature=signature)
        payload = record.to_dict()
        tx_id = canonical_hash(payload)

        try:
            conn = await self._connect()
            cursor = await conn.execute("""
                INSERT INTO records
                (digest, signer, timestamp, signature, transaction_id, canonical_json)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                digest.hex, signer, timestamp, record.signature_hex, tx_id,
                canonical_json_str(payload),
            ))
            position = cursor.lastrowid
            await cursor.close()
        except sqlite3.IntegrityError as e:
            raise DuplicateDocumentError(f"Document {digest.hex} already registered") from e
        except RegistryUnavailableError as e:
            raise StorageError(f"Failed to store {digest.hex}: {e.message}") from e
        except sqlite3.Error as e:
            raise StorageError(f"Failed to store {digest.hex}: {e}") from e

        return TransactionReceipt(transaction_id=tx_id, digest=digest, block_number=position)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
        self._closed = True
