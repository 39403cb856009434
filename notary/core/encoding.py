# notary/core/encoding.py
from eth_utils import is_hex_address, to_checksum_address

from notary.core.errors import InvalidAddressError

HEX_PREFIX = "0x"


def hex_encode(data: bytes) -> str:
    """Encode bytes as lowercase hex with the 0x prefix."""
    return HEX_PREFIX + bytes(data).hex()


def hex_decode(s: str) -> bytes:
    """Decode hex (with or without 0x prefix, any case) back to bytes."""
    s = s.strip()
    if s[:2].lower() == HEX_PREFIX:
        s = s[2:]
    return bytes.fromhex(s)


def canonical_address(address: str) -> str:
    """
    Normalize an address to its EIP-55 checksummed form.
    Case carries no meaning for comparison; mixed case input is accepted as-is
    (no checksum enforcement) since users paste addresses from anywhere.
    """
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddressError("Signer address is required")
    candidate = address.strip()
    if not is_hex_address(candidate):
        raise InvalidAddressError(f"Not a valid 20-byte hex address: {candidate!r}",
                                  {"address": candidate})
    return to_checksum_address(candidate.lower())


def same_address(a: str, b: str) -> bool:
    return canonical_address(a) == canonical_address(b)
