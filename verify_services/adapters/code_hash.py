"""
code_hash.py
------------

Keccak-256 helpers used to content-address uploaded files.

- `keccak256(data: bytes|str) -> bytes`
    Raw 32-byte Keccak-256 digest (pre-standard SHA-3, as used by Solidity
    metadata). Text is hashed as its UTF-8 bytes.

- `content_digest(data: bytes|str) -> str`
    0x-prefixed lowercase hex digest; the form metadata `sources[*].keccak256`
    fields are written in.

- `digests_equal(a, b) -> bool`
    Case-insensitive comparison of two 0x-hex digests.

Keccak is provided by pycryptodome (``Crypto.Hash.keccak``).
"""

from __future__ import annotations

from typing import Union

from Crypto.Hash import keccak as _keccak

HexStr = str
RawFile = Union[bytes, bytearray, memoryview, str]


def _as_bytes(data: RawFile) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    raise TypeError(f"Unsupported raw file type: {type(data)!r}")


def keccak256(data: RawFile) -> bytes:
    h = _keccak.new(digest_bits=256)
    h.update(_as_bytes(data))
    return h.digest()


def content_digest(data: RawFile) -> HexStr:
    """0x-prefixed Keccak-256 of the raw bytes of `data`."""
    return "0x" + keccak256(data).hex()


def digests_equal(a: HexStr, b: HexStr) -> bool:
    return str(a).strip().lower() == str(b).strip().lower()


__all__ = ["RawFile", "keccak256", "content_digest", "digests_equal"]
