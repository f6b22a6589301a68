"""
Bytecode matching.

compare_bytecodes(deployed, compiled):

    empty / "0x" deployed code              -> None (no match)
    identical                               -> perfect
    identical once metadata trailers trimmed -> partial
    otherwise                               -> None

`BytecodeMatcher.match_address` scans candidate addresses strictly in order and
stops at the first one that matches at all; a later address that would have
matched perfectly is never read. Failed reads are logged and skipped.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..adapters.chain_rpc import ChainRegistry, read_code
from ..cbor import trim_trailer
from ..logging import get_logger
from ..models.common import checksum_address
from ..models.verify import NO_MATCH, Match, MatchStatus

log = get_logger(__name__)


def compare_bytecodes(deployed: Optional[str], compiled: Optional[str]) -> Optional[MatchStatus]:
    if not deployed or not compiled:
        return None
    deployed = deployed.strip().lower()
    compiled = compiled.strip().lower()
    if len(deployed) <= 2:
        return None
    if deployed == compiled:
        return MatchStatus.perfect
    trimmed_deployed = trim_trailer(deployed)
    trimmed_compiled = trim_trailer(compiled)
    if trimmed_deployed is None or trimmed_compiled is None:
        return None
    if trimmed_deployed == trimmed_compiled:
        return MatchStatus.partial
    return None


class BytecodeMatcher:
    def __init__(self, registry: ChainRegistry, *, read_timeout_s: Optional[float] = None):
        self.registry = registry
        self.read_timeout_s = read_timeout_s

    async def match_address(self, chain: str, addresses: Sequence[str], compiled: str) -> Match:
        reader = self.registry.reader_for(chain)
        for candidate in addresses:
            address = checksum_address(candidate)
            read = await read_code(reader, address, timeout_s=self.read_timeout_s)
            if not read.ok:
                log.warning("bytecode_read_failed", loc="[MATCH]", chain=chain, address=address, error=read.error)
                continue
            log.debug("bytecode_retrieved", loc="[MATCH]", chain=chain, address=address, size=len(read.code or ""))
            status = compare_bytecodes(read.code, compiled)
            if status is not None:
                log.info("bytecode_matched", loc="[MATCH]", chain=chain, address=address, status=status.value)
                return Match(address=address, status=status)
        return NO_MATCH

    def compare_prefetched(self, address: str, deployed: str, compiled: str) -> Match:
        """Single comparison against on-chain code the caller already holds."""
        address = checksum_address(address)
        status = compare_bytecodes(deployed, compiled)
        if status is None:
            return NO_MATCH
        return Match(address=address, status=status)


__all__ = ["compare_bytecodes", "BytecodeMatcher"]
