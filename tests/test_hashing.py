# tests/test_hashing.py
import io
from pathlib import Path

import pytest

from notary.core.errors import HashingError, MissingFileError
from notary.crypto.hashing import hash_bytes, hash_file, hash_path, hash_stream

EMPTY_SHA256 = "0xe3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
ABC_SHA256 = "0xba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_known_vectors():
    assert hash_bytes(b"").hex == EMPTY_SHA256
    assert hash_bytes(b"abc").hex == ABC_SHA256


def test_deterministic():
    data = b"The quick brown fox" * 1000
    assert hash_bytes(data) == hash_bytes(bytes(data))


def test_single_bit_flip_changes_digest():
    data = bytearray(b"contract v1 final.pdf" * 50)
    original = hash_bytes(bytes(data))
    for position in (0, len(data) // 2, len(data) - 1):
        mutated = bytearray(data)
        mutated[position] ^= 0x01
        assert hash_bytes(bytes(mutated)) != original


def test_stream_matches_bytes_for_any_chunk_size():
    data = bytes(range(256)) * 400
    expected = hash_bytes(data)
    for chunk in (1, 7, 4096, 1 << 20):
        assert hash_stream(io.BytesIO(data), chunk_size=chunk) == expected


class FlakyStream(io.RawIOBase):
    """Returns one chunk, then fails like a yanked USB stick."""

    def __init__(self):
        self.calls = 0

    def read(self, n=-1):
        self.calls += 1
        if self.calls == 1:
            return b"x" * 10
        raise OSError("device not ready")


def test_partial_read_produces_no_digest():
    with pytest.raises(HashingError):
        hash_stream(FlakyStream())


@pytest.mark.asyncio
async def test_hash_file_matches_bytes(tmp_path: Path):
    path = tmp_path / "doc.bin"
    data = b"\x00\x01" * 100_000
    path.write_bytes(data)
    assert await hash_file(path) == hash_bytes(data)
    assert hash_path(str(path)) == hash_bytes(data)


@pytest.mark.asyncio
async def test_hash_missing_file(tmp_path: Path):
    with pytest.raises(MissingFileError):
        await hash_file(tmp_path / "nope.pdf")


def test_hash_directory_is_missing_file(tmp_path: Path):
    with pytest.raises(MissingFileError):
        hash_path(tmp_path)
