from __future__ import annotations

"""
Verification models

- CheckedContract: a metadata document with the source texts it references,
  already grouped by the caller.
- InputData: one submission to the pipeline (repository root, chain, candidate
  addresses, files and optional pre-fetched bytecode).
- VerifyRequest: the HTTP body for POST /verify; the repository root comes from
  configuration rather than from the client.
- Match / MatchStatus: the pipeline's result.

Notes
-----
* `addresses` order is significant: the first candidate that matches wins.
* Address and chain presence are checked by the pipeline itself so that
  programmatic callers get the same InputValidationError as HTTP callers.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class MatchStatus(str, Enum):
    perfect = "perfect"
    partial = "partial"


class Match(BaseModel):
    """
    Outcome of bytecode matching. ``status is None`` means no match; such a
    Match is never persisted.
    """

    address: Optional[str] = Field(default=None, description="Checksummed matching address.")
    status: Optional[MatchStatus] = Field(default=None, description="perfect | partial | null")

    model_config = ConfigDict(frozen=True)

    @property
    def matched(self) -> bool:
        return self.address is not None and self.status is not None


NO_MATCH = Match()


class CheckedContract(BaseModel):
    """Metadata plus the sources it names, keyed by file name."""

    metadata: Dict[str, Any] = Field(..., description="Compiler metadata JSON document.")
    sources: Dict[str, str] = Field(default_factory=dict, description="file name -> source text")

    model_config = ConfigDict(extra="forbid")


class InputData(BaseModel):
    repository: str = Field(..., description="Root path for verified output.")
    chain: Optional[str] = Field(default=None, description="Chain name or numeric chain id.")
    addresses: List[Optional[str]] = Field(default_factory=list, description="Candidate addresses, order-significant.")
    files: List[Union[str, CheckedContract]] = Field(
        default_factory=list,
        description="Raw uploaded files, or metadata+sources bundles.",
    )
    bytecode: Optional[str] = Field(
        default=None, description="Pre-fetched on-chain code for addresses[0]; skips the address scan."
    )


class VerifyRequest(BaseModel):
    chain: Optional[str] = Field(default=None, description="Chain name or numeric chain id.")
    addresses: List[Optional[str]] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list, description="Raw file contents (metadata + sources).")
    contracts: List[CheckedContract] = Field(default_factory=list)
    bytecode: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    def to_input(self, repository: str) -> InputData:
        return InputData(
            repository=repository,
            chain=self.chain,
            addresses=list(self.addresses),
            files=[*self.files, *self.contracts],
            bytecode=self.bytecode,
        )


class LookupResult(BaseModel):
    chain: str
    address: str
    status: MatchStatus


__all__ = [
    "MatchStatus",
    "Match",
    "NO_MATCH",
    "CheckedContract",
    "InputData",
    "VerifyRequest",
    "LookupResult",
]
