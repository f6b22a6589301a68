from __future__ import annotations

"""
Address and hex helpers shared by the services and routers.

- checksum_address: EIP-55 form of a 20-byte hex address, ValueError otherwise.
- ensure_0x:        0x prefix for compiler output objects, which omit it.
"""

from eth_utils import is_hex_address, to_checksum_address


def checksum_address(v: str) -> str:
    """
    EIP-55 checksum form of a hex address. Raises ValueError for anything
    that is not 0x + 40 hex characters.
    """
    if not isinstance(v, str) or not is_hex_address(v.strip()):
        raise ValueError(f"not a hex address: {v!r}")
    return to_checksum_address(v.strip())


def ensure_0x(v: str) -> str:
    """Ensure a 0x prefix on a (possibly already prefixed) hex string."""
    return v if isinstance(v, str) and v.startswith("0x") else f"0x{v}"


__all__ = ["checksum_address", "ensure_0x"]
