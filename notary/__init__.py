# notary/__init__.py
"""
Notary: sign document fingerprints with deterministic accounts, register them
in an append-only ledger, and verify a file against its claimed signer later.
"""

from notary.chain.workflow import SigningWorkflow
from notary.core.types import DocumentDigest, SignedRecord, VerificationVerdict
from notary.crypto.hashing import hash_bytes, hash_file
from notary.crypto.keys import IdentityProvider
from notary.storage.client import RegistryClient
from notary.verify.verifier import VerificationEngine

__version__ = "0.1.0"

__all__ = [
    "DocumentDigest",
    "IdentityProvider",
    "RegistryClient",
    "SignedRecord",
    "SigningWorkflow",
    "VerificationEngine",
    "VerificationVerdict",
    "hash_bytes",
    "hash_file",
]
