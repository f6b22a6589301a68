"""
verify_services.cbor

Codec for the metadata trailer the Solidity compiler appends to runtime
bytecode:

    <logic bytecode> <CBOR map> <len: uint16 big-endian>

The final two bytes give the byte length of the CBOR map that precedes them
(the two length bytes themselves are not counted). The map references the
metadata document by content hash (`bzzr0`, `bzzr1` or `ipfs`, each a byte
string) and usually carries the compiler version under `solc`.

All functions take bytecode as a hex string, with or without a 0x prefix.

Public API
----------
- trailer_span(bytecode) -> int | None      hex chars occupied by map + length
- trim_trailer(bytecode) -> str | None      bytecode with the trailer removed
- split_trailer(bytecode) -> (str, bytes) | None
- decode_trailer(bytecode) -> dict

`trim_trailer` and `split_trailer` never raise: a bytecode that is too short
for its own declared trailer, or whose length field is not hex, yields None.
`decode_trailer` raises TrailerError when the trailer is absent or not a CBOR map.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional, Tuple

import cbor2

_LEN_HEX_CHARS = 4
_LEN_FIELD = re.compile(r"[0-9a-fA-F]{4}")


class TrailerError(ValueError):
    """Bytecode carries no decodable metadata trailer."""


def _split_prefix(bytecode: str) -> Tuple[str, str]:
    if bytecode[:2] in ("0x", "0X"):
        return bytecode[:2], bytecode[2:]
    return "", bytecode


def trailer_span(bytecode: str) -> Optional[int]:
    """
    Number of trailing hex characters taken by the CBOR map and its length
    field (``2 * declared_length + 4``), or None when the bytecode cannot hold it.
    """
    _, body = _split_prefix(bytecode or "")
    if len(body) < _LEN_HEX_CHARS:
        return None
    tail = body[-_LEN_HEX_CHARS:]
    if not _LEN_FIELD.fullmatch(tail):
        return None
    declared = int(tail, 16)
    span = declared * 2 + _LEN_HEX_CHARS
    if span > len(body):
        return None
    return span


def trim_trailer(bytecode: str) -> Optional[str]:
    """
    Return `bytecode` without its metadata trailer, keeping any 0x prefix.
    None on underflow or a malformed length field.
    """
    span = trailer_span(bytecode)
    if span is None:
        return None
    prefix, body = _split_prefix(bytecode)
    return prefix + body[: len(body) - span]


def split_trailer(bytecode: str) -> Optional[Tuple[str, bytes]]:
    """Return (logic bytecode hex, raw CBOR bytes) or None."""
    span = trailer_span(bytecode)
    if span is None:
        return None
    prefix, body = _split_prefix(bytecode)
    cbor_hex = body[len(body) - span : len(body) - _LEN_HEX_CHARS]
    try:
        raw = bytes.fromhex(cbor_hex)
    except ValueError:
        return None
    return prefix + body[: len(body) - span], raw


def decode_trailer(bytecode: str) -> Dict[str, Any]:
    """
    Decode the CBOR map at the end of `bytecode`.

    Raises
    ------
    TrailerError
        No trailer fits the bytecode, or it is not a well-formed CBOR map.
    """
    parts = split_trailer(bytecode)
    if parts is None:
        raise TrailerError("bytecode too short for its declared metadata trailer")
    _, raw = parts
    try:
        decoded = cbor2.loads(raw)
    except (cbor2.CBORDecodeError, ValueError) as e:
        raise TrailerError(f"metadata trailer is not valid CBOR: {e}") from e
    if not isinstance(decoded, dict):
        raise TrailerError(f"metadata trailer decodes to {type(decoded).__name__}, expected a map")
    return decoded


__all__ = [
    "TrailerError",
    "trailer_span",
    "trim_trailer",
    "split_trailer",
    "decode_trailer",
]
