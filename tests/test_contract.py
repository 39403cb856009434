# tests/test_contract.py
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from notary.core.errors import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    IndexOutOfRangeError,
    RegistryDecodeError,
    RegistryUnavailableError,
    StorageError,
    VerificationFailed,
)
from notary.crypto.hashing import hash_bytes
from notary.storage.client import RegistryClient
from notary.storage.contract import DOCUMENT_REGISTRY_ABI, EthereumRegistry
from notary.verify.verifier import VerificationEngine

from tests.conftest import ADDR_0, ADDR_1

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
SIG = b"\x33" * 65


def fake_call(contract, name, result=None, side_effect=None):
    fn = getattr(contract.functions, name)
    fn.return_value.call = AsyncMock(return_value=result, side_effect=side_effect)
    return fn


@pytest.fixture
def w3():
    w3 = MagicMock()
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": 1, "blockNumber": 12})
    w3.provider.disconnect = AsyncMock()
    return w3


@pytest.fixture
def contract():
    return MagicMock()


@pytest.fixture
def registry(w3, contract):
    return EthereumRegistry("http://localhost:8545", CONTRACT.lower(), w3=w3, contract=contract)


def test_abi_exposes_registry_interface():
    names = {entry["name"] for entry in DOCUMENT_REGISTRY_ABI}
    assert names == {
        "getDocumentCount", "getDocumentHashByIndex", "getDocumentInfo",
        "isDocumentStored", "storeDocumentHash",
    }


def test_contract_address_checksummed(registry):
    assert registry.contract_address == CONTRACT


@pytest.mark.asyncio
async def test_reads(registry, contract):
    d = hash_bytes(b"on-chain")
    fake_call(contract, "getDocumentCount", 3)
    fake_call(contract, "getDocumentHashByIndex", d.value)
    fake_call(contract, "isDocumentStored", True)
    info = fake_call(contract, "getDocumentInfo", (d.value, 1700000000, SIG, ADDR_1.lower()))

    assert await registry.get_document_count() == 3
    assert await registry.get_document_hash_by_index(0) == d
    assert await registry.is_document_stored(d) is True
    record = await registry.get_document_info(d)
    info.assert_called_once_with(d.value)
    assert record.signer == ADDR_1
    assert record.timestamp == 1700000000
    assert record.signature == SIG


@pytest.mark.asyncio
async def test_reverted_lookup_is_not_found(registry, contract):
    fake_call(contract, "getDocumentInfo", side_effect=ContractLogicError("execution reverted: not found"))
    with pytest.raises(DocumentNotFoundError):
        await registry.get_document_info(hash_bytes(b"x"))
    assert await RegistryClient(registry).lookup(hash_bytes(b"x")) is None


@pytest.mark.asyncio
async def test_zero_signer_is_not_found(registry, contract):
    d = hash_bytes(b"empty slot")
    fake_call(contract, "getDocumentInfo", (b"\x00" * 32, 0, b"", "0x" + "00" * 20))
    with pytest.raises(DocumentNotFoundError):
        await registry.get_document_info(d)


@pytest.mark.asyncio
async def test_reverted_index_is_out_of_range(registry, contract):
    fake_call(contract, "getDocumentHashByIndex", side_effect=ContractLogicError("index out of bounds"))
    with pytest.raises(IndexOutOfRangeError):
        await registry.get_document_hash_by_index(7)


@pytest.mark.asyncio
async def test_decode_failure(registry, contract):
    fake_call(contract, "getDocumentCount", side_effect=BadFunctionCallOutput("could not decode result data"))
    with pytest.raises(RegistryDecodeError):
        await registry.get_document_count()


@pytest.mark.asyncio
async def test_transport_failure(registry, contract):
    fake_call(contract, "isDocumentStored", side_effect=aiohttp.ClientConnectionError("refused"))
    with pytest.raises(RegistryUnavailableError):
        await registry.is_document_stored(hash_bytes(b"x"))


@pytest.mark.asyncio
async def test_transport_failure_during_verify_is_verification_failed(registry, contract):
    fake_call(contract, "isDocumentStored", side_effect=aiohttp.ClientConnectionError("refused"))
    engine = VerificationEngine(RegistryClient(registry))
    with pytest.raises(VerificationFailed) as exc:
        await engine.verify(b"some file", ADDR_1)
    assert isinstance(exc.value.__cause__, RegistryUnavailableError)


@pytest.mark.asyncio
async def test_store_sends_transaction_from_signer(registry, contract, w3):
    d = hash_bytes(b"store me")
    store = contract.functions.storeDocumentHash
    store.return_value.transact = AsyncMock(return_value=b"\xab" * 32)

    receipt = await registry.store_document_hash(d, 1700000000, SIG, ADDR_0)

    store.assert_called_once_with(d.value, 1700000000, SIG, ADDR_0)
    store.return_value.transact.assert_awaited_once_with({"from": ADDR_0})
    assert receipt.transaction_id == "0x" + "ab" * 32
    assert receipt.block_number == 12
    assert receipt.status == "confirmed"


@pytest.mark.asyncio
async def test_store_reverted_receipt(registry, contract, w3):
    contract.functions.storeDocumentHash.return_value.transact = AsyncMock(return_value=b"\x01" * 32)
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": 0, "blockNumber": 13})
    with pytest.raises(StorageError):
        await registry.store_document_hash(hash_bytes(b"r"), 1, SIG, ADDR_0)


@pytest.mark.asyncio
async def test_store_duplicate_revert(registry, contract):
    contract.functions.storeDocumentHash.return_value.transact = AsyncMock(
        side_effect=ContractLogicError("execution reverted: Document already stored")
    )
    with pytest.raises(DuplicateDocumentError):
        await registry.store_document_hash(hash_bytes(b"d"), 1, SIG, ADDR_0)


@pytest.mark.asyncio
async def test_close_disconnects_provider(registry, w3):
    await registry.close()
    w3.provider.disconnect.assert_awaited_once()
