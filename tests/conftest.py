# tests/conftest.py
import pytest

from notary.crypto.keys import IdentityProvider
from notary.storage import InMemoryRegistry
from notary.storage.client import RegistryClient

# Public development mnemonic (Anvil / Hardhat default). Never use for real funds.
DEV_MNEMONIC = "test test test test test test test test test test test junk"

ADDR_0 = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ADDR_1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
ADDR_2 = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"


@pytest.fixture
def identity() -> IdentityProvider:
    return IdentityProvider(DEV_MNEMONIC, count=5)


@pytest.fixture
def memory_registry() -> RegistryClient:
    return RegistryClient(InMemoryRegistry())
