# notary/storage/contract.py
import asyncio
import logging
from typing import Any, Optional

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from notary.core.encoding import canonical_address, hex_encode
from notary.core.errors import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    IndexOutOfRangeError,
    RegistryDecodeError,
    RegistryUnavailableError,
    StorageError,
)
from notary.core.types import DocumentDigest, SignedRecord, TransactionReceipt
from . import RegistryBackend

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "00" * 20

DOCUMENT_REGISTRY_ABI = [
    {
        "type": "function", "name": "getDocumentCount", "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function", "name": "getDocumentHashByIndex", "stateMutability": "view",
        "inputs": [{"name": "index", "type": "uint256"}],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
    {
        "type": "function", "name": "getDocumentInfo", "stateMutability": "view",
        "inputs": [{"name": "hash", "type": "bytes32"}],
        "outputs": [
            {"name": "hash", "type": "bytes32"},
            {"name": "timestamp", "type": "uint256"},
            {"name": "signature", "type": "bytes"},
            {"name": "signer", "type": "address"},
        ],
    },
    {
        "type": "function", "name": "isDocumentStored", "stateMutability": "view",
        "inputs": [{"name": "hash", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function", "name": "storeDocumentHash", "stateMutability": "nonpayable",
        "inputs": [
            {"name": "hash", "type": "bytes32"},
            {"name": "timestamp", "type": "uint256"},
            {"name": "signature", "type": "bytes"},
            {"name": "signer", "type": "address"},
        ],
        "outputs": [],
    },
]

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


class EthereumRegistry(RegistryBackend):
    """
    DocumentRegistry contract reached over JSON-RPC.

    Writes are sent as ``transact({"from": signer})`` so the node signs the
    transaction (development nodes such as Anvil keep these accounts unlocked).
    The document signature itself is produced locally and only passed as data.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        *,
        w3: Optional[AsyncWeb3] = None,
        contract: Any = None,
        receipt_timeout: float = 120.0,
    ):
        self.rpc_url = rpc_url
        self.contract_address = canonical_address(contract_address)
        self.w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.contract = contract or self.w3.eth.contract(
            address=self.contract_address, abi=DOCUMENT_REGISTRY_ABI
        )
        self.receipt_timeout = receipt_timeout

    async def _call(self, name: str, *args):
        logger.debug("eth_call %s%s", name, args)
        try:
            return await getattr(self.contract.functions, name)(*args).call()
        except ContractLogicError:
            raise
        except BadFunctionCallOutput as e:
            raise RegistryDecodeError(
                f"Could not decode {name} result; is the contract deployed at {self.contract_address}?"
            ) from e
        except Web3Exception as e:
            raise RegistryUnavailableError(f"{name} failed: {e}") from e
        except TRANSPORT_ERRORS as e:
            raise RegistryUnavailableError(f"Cannot reach RPC endpoint {self.rpc_url}: {e}") from e

    async def get_document_count(self) -> int:
        try:
            return int(await self._call("getDocumentCount"))
        except ContractLogicError as e:
            raise RegistryDecodeError(f"getDocumentCount reverted: {e}") from e

    async def get_document_hash_by_index(self, index: int) -> DocumentDigest:
        if index < 0:
            raise IndexOutOfRangeError(f"No document at index {index}")
        try:
            raw = await self._call("getDocumentHashByIndex", index)
        except ContractLogicError as e:
            raise IndexOutOfRangeError(f"No document at index {index}") from e
        return DocumentDigest(bytes(raw))

    async def get_document_info(self, digest: DocumentDigest) -> SignedRecord:
        try:
            result = await self._call("getDocumentInfo", digest.value)
        except ContractLogicError as e:
            raise DocumentNotFoundError(f"Document {digest.hex} not found") from e
        try:
            _, timestamp, signature, signer = result
        except (TypeError, ValueError) as e:
            raise RegistryDecodeError(f"Unexpected getDocumentInfo result: {result!r}") from e
        if signer is None or str(signer).lower() == ZERO_ADDRESS:
            raise DocumentNotFoundError(f"Document {digest.hex} not found")
        return SignedRecord(
            digest=digest,
            signer=canonical_address(signer),
            timestamp=int(timestamp),
            signature=bytes(signature),
        )

    async def is_document_stored(self, digest: DocumentDigest) -> bool:
        try:
            return bool(await self._call("isDocumentStored", digest.value))
        except ContractLogicError as e:
            raise RegistryDecodeError(f"isDocumentStored reverted: {e}") from e

    async def store_document_hash(
        self,
        digest: DocumentDigest,
        timestamp: int,
        signature: bytes,
        signer: str,
    ) -> TransactionReceipt:
        fn = self.contract.functions.storeDocumentHash(digest.value, timestamp, signature, signer)
        try:
            tx_hash = await fn.transact({"from": signer})
            receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except ContractLogicError as e:
            if "exist" in str(e).lower() or "stored" in str(e).lower():
                raise DuplicateDocumentError(f"Document {digest.hex} already registered") from e
            raise StorageError(f"storeDocumentHash reverted: {e}") from e
        except (Web3Exception, *TRANSPORT_ERRORS) as e:
            raise StorageError(f"storeDocumentHash failed: {e}") from e

        status = "confirmed" if receipt.get("status", 1) == 1 else "reverted"
        if status != "confirmed":
            raise StorageError(f"Transaction {hex_encode(bytes(tx_hash))} reverted")
        logger.info("Stored %s in block %s", digest.hex, receipt.get("blockNumber"))
        return TransactionReceipt(
            transaction_id=hex_encode(bytes(tx_hash)),
            digest=digest,
            block_number=receipt.get("blockNumber"),
            status=status,
        )

    async def close(self) -> None:
        provider = self.w3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
