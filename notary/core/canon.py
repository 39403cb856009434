# notary/core/canon.py
import hashlib
from typing import Any

try:
    import jcs
except ImportError:
    raise ImportError("Please install jcs: pip install jcs")


def canonical_json(obj: Any) -> bytes:
    """
    Produce deterministic UTF-8 bytes according to RFC 8785 (JSON Canonicalization Scheme).
    Returns bytes ready for hashing or export.
    """
    return jcs.canonicalize(obj)


def canonical_json_str(obj: Any) -> str:
    """Same as above, but returns string (used for JSONL export)."""
    return canonical_json(obj).decode("utf-8")


def canonical_hash(obj: Any) -> str:
    """Lowercase hex SHA-256 of the canonical JSON form (0x prefixed)."""
    return "0x" + hashlib.sha256(canonical_json(obj)).hexdigest()
