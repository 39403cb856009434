# notary/core/types.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from notary.core.encoding import hex_decode, hex_encode
from notary.core.errors import InvalidDigestError

DIGEST_SIZE = 32
UINT64_MAX = 2**64 - 1


@dataclass(frozen=True)
class DocumentDigest:
    """SHA-256 fingerprint of a document. Canonical text form: 0x + 64 lowercase hex."""
    value: bytes

    def __post_init__(self):
        if not isinstance(self.value, (bytes, bytearray)) or len(self.value) != DIGEST_SIZE:
            raise InvalidDigestError(f"Digest must be exactly {DIGEST_SIZE} bytes")
        object.__setattr__(self, "value", bytes(self.value))

    @classmethod
    def from_hex(cls, s: str) -> "DocumentDigest":
        if not isinstance(s, str):
            raise InvalidDigestError("Digest must be a hex string")
        try:
            raw = hex_decode(s)
        except ValueError as e:
            raise InvalidDigestError(f"Not a hex digest: {s!r}") from e
        return cls(raw)

    @classmethod
    def coerce(cls, d: Union["DocumentDigest", str, bytes]) -> "DocumentDigest":
        if isinstance(d, DocumentDigest):
            return d
        if isinstance(d, str):
            return cls.from_hex(d)
        return cls(d)

    @property
    def hex(self) -> str:
        return hex_encode(self.value)

    def __str__(self) -> str:
        return self.hex


@dataclass(frozen=True)
class Account:
    """A derived identity. Only the public side is ever exposed."""
    index: int
    address: str                    # EIP-55 checksummed


@dataclass(frozen=True)
class SignedRecord:
    """One entry in the append-only registry. Immutable once stored."""
    digest: DocumentDigest
    signer: str
    timestamp: int                  # seconds since epoch, uint64
    signature: bytes = field(repr=False)

    @property
    def signature_hex(self) -> str:
        return hex_encode(self.signature)

    def to_dict(self) -> dict:
        """JSON-friendly view (hex strings) for canonicalization / export."""
        return {
            "digest": self.digest.hex,
            "signer": self.signer,
            "timestamp": self.timestamp,
            "signature": self.signature_hex,
        }


@dataclass(frozen=True)
class TransactionReceipt:
    """Acknowledgement returned by a registry append."""
    transaction_id: str
    digest: DocumentDigest
    block_number: Optional[int] = None
    status: str = "confirmed"


class VerdictReason(str, Enum):
    NOT_REGISTERED = "not_registered"
    SIGNER_MISMATCH = "signer_mismatch"
    INCONSISTENT = "inconsistent"
    SIGNATURE_INVALID = "signature_invalid"


@dataclass(frozen=True)
class VerificationVerdict:
    """Outcome of one verification attempt. Never stored."""
    valid: bool
    digest: DocumentDigest
    claimed_signer: str
    record: Optional[SignedRecord] = None
    reason: Optional[VerdictReason] = None

    def __bool__(self):
        return self.valid

    def __str__(self):
        if self.valid:
            return f"Document {self.digest.hex} was signed by {self.claimed_signer} ✓"
        if self.reason is VerdictReason.NOT_REGISTERED:
            return f"Document {self.digest.hex} is not registered"
        if self.reason is VerdictReason.SIGNER_MISMATCH:
            return (f"Signer mismatch: claimed {self.claimed_signer}, "
                    f"registered {self.record.signer if self.record else '?'}")
        if self.reason is VerdictReason.SIGNATURE_INVALID:
            return "Stored signature does not recover to the registered signer"
        return f"Verification failed: {self.reason.value if self.reason else 'unknown'}"
