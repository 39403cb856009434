# notary/core/errors.py
"""
Error taxonomy for the notary pipeline.

Every error carries a stable ``reason`` code so callers (the CLI, an API layer)
can map failures to actionable messages without string matching.
"""

from typing import Any, Dict, Optional


class NotaryError(Exception):
    """Base exception for all notary errors."""

    reason = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ── Input errors: reported immediately, never retried

class InputError(NotaryError):
    reason = "invalid_input"


class MissingFileError(InputError):
    reason = "missing_file"


class InvalidDigestError(InputError):
    reason = "invalid_digest"


class InvalidAddressError(InputError):
    reason = "invalid_address"


class InvalidIndexError(InputError):
    reason = "invalid_index"


class InvalidSeedError(InputError):
    reason = "invalid_seed"


class OperationCancelled(InputError):
    """Raised when the user declines a confirmation gate."""

    reason = "cancelled"


# ── Connectivity errors: the ledger could not be reached or understood

class ConnectivityError(NotaryError):
    reason = "connectivity"


class RegistryUnavailableError(ConnectivityError):
    reason = "registry_unavailable"


class RegistryDecodeError(ConnectivityError):
    reason = "registry_decode"


class VerificationFailed(ConnectivityError):
    """A verification could not reach a verdict because the registry failed."""

    reason = "verification_failed"


# ── Registry-level errors

class RegistryError(NotaryError):
    reason = "registry"


class IndexOutOfRangeError(RegistryError):
    reason = "index_out_of_range"


class DocumentNotFoundError(RegistryError):
    reason = "not_found"


class StorageError(NotaryError):
    """An append to the registry did not complete."""

    reason = "storage"


class DuplicateDocumentError(StorageError):
    reason = "duplicate"


class ConsistencyError(NotaryError):
    """exists() and lookup() disagree. Fatal for the current operation."""

    reason = "inconsistent"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, verdict: Any = None) -> None:
        super().__init__(message, details)
        self.verdict = verdict


# ── Signing errors

class SigningError(NotaryError):
    reason = "signing"


class NotConnectedError(SigningError):
    reason = "not_connected"


class SignatureError(SigningError):
    """Signature is malformed or cannot be recovered."""

    reason = "bad_signature"


class HashingError(NotaryError):
    reason = "hashing"
