"""
Pydantic models and value types shared by the services and routers.
"""

from __future__ import annotations

from .common import checksum_address, ensure_0x
from .metadata import SOLIDITY, MetadataDescriptor, SourceEntry
from .verify import (NO_MATCH, CheckedContract, InputData, LookupResult,
                     Match, MatchStatus, VerifyRequest)

__all__ = [
    "checksum_address",
    "ensure_0x",
    "SOLIDITY",
    "MetadataDescriptor",
    "SourceEntry",
    "NO_MATCH",
    "CheckedContract",
    "InputData",
    "LookupResult",
    "Match",
    "MatchStatus",
    "VerifyRequest",
]
