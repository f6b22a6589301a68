"""
Repository path scheme for verified contracts.

Two directory layouts are supported:

CURRENT (keyed by numeric chain id)::

    {root}/contracts/full_match/{chainId}/{address}/metadata.json
    {root}/contracts/full_match/{chainId}/{address}/sources/{file}
    {root}/contracts/partial_match/{chainId}/{address}/metadata.json
    {root}/contracts/partial_match/{chainId}/{address}/sources/{file}

LEGACY (keyed by chain name)::

    {root}/contract/{chainName}/{address}/...
    {root}/partial_matches/{chainName}/{address}/...

A full match additionally stores the metadata under its content address
(``{root}/swarm/bzzr0/<hex>``, ``{root}/swarm/bzzr1/<hex>`` or
``{root}/ipfs/<base58>``) in both layouts.

`RepositoryWriter` first builds an ordered plan of `WriteOp`s and then performs
it through a `Repository`. Plans are pure functions of their inputs, so
re-verifying the same contract rewrites byte-identical files at the same paths.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional

from ..adapters.chain_rpc import resolve_chain
from ..logging import get_logger
from ..models.verify import MatchStatus
from . import Repository

log = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_./-]", re.IGNORECASE)
_DOT_SEGMENT = re.compile(r"(^|/)\.+($|/)")


class StorageLayout(str, Enum):
    CURRENT = "current"
    LEGACY = "legacy"


def sanitize_path(file_name: str) -> str:
    """
    Make a source file name safe to use below ``sources/``.

    Characters outside ``[a-z0-9_./-]`` become ``_``; a segment made only of
    dots (``.``, ``..``, ...) is collapsed together with its slashes into ``_``
    until none remain.
    """
    out = _UNSAFE_CHARS.sub("_", file_name)
    while True:
        collapsed = _DOT_SEGMENT.sub("_", out)
        if collapsed == out:
            return out
        out = collapsed


def join_path(root: str, *parts: str) -> str:
    """Join `parts` below `root`; empty segments in `parts` are dropped."""
    segments = [seg for part in parts for seg in str(part).split("/") if seg]
    base = str(root).rstrip("/") or "/"
    if not segments:
        return base
    return base.rstrip("/") + "/" + "/".join(segments)


@dataclass(frozen=True)
class WriteOp:
    path: str
    data: bytes


class RepositoryWriter:
    def __init__(self, repository: Repository, layout: StorageLayout = StorageLayout.CURRENT):
        self.repository = repository
        self.layout = StorageLayout(layout)

    # ---------- path scheme ----------

    def match_dir(self, root: str, chain: str, address: str, status: MatchStatus) -> str:
        spec = resolve_chain(chain)
        if self.layout is StorageLayout.LEGACY:
            top = "contract" if status is MatchStatus.perfect else "partial_matches"
            return join_path(root, top, spec.name, address)
        kind = "full_match" if status is MatchStatus.perfect else "partial_match"
        return join_path(root, "contracts", kind, spec.key, address)

    def _address_ops(
        self,
        root: str,
        chain: str,
        address: str,
        status: MatchStatus,
        metadata: str,
        sources: Mapping[str, str],
    ) -> List[WriteOp]:
        base = self.match_dir(root, chain, address, status)
        ops = [WriteOp(join_path(base, "metadata.json"), metadata.encode("utf-8"))]
        for file_name, content in sources.items():
            ops.append(WriteOp(join_path(base, "sources", sanitize_path(file_name)), content.encode("utf-8")))
        return ops

    def plan_full(
        self,
        root: str,
        chain: str,
        address: str,
        metadata: str,
        sources: Mapping[str, str],
        content_path: str,
    ) -> List[WriteOp]:
        ops = [WriteOp(join_path(root, content_path), metadata.encode("utf-8"))]
        ops.extend(self._address_ops(root, chain, address, MatchStatus.perfect, metadata, sources))
        return ops

    def plan_partial(
        self,
        root: str,
        chain: str,
        address: str,
        metadata: str,
        sources: Mapping[str, str],
    ) -> List[WriteOp]:
        return self._address_ops(root, chain, address, MatchStatus.partial, metadata, sources)

    # ---------- effects ----------

    async def apply(self, ops: List[WriteOp]) -> List[str]:
        for op in ops:
            await self.repository.write(op.path, op.data)
        return [op.path for op in ops]

    async def store_full(self, root, chain, address, metadata, sources, content_path) -> List[str]:
        paths = await self.apply(self.plan_full(root, chain, address, metadata, sources, content_path))
        log.info("stored_full_match", loc="[STOREDATA]", chain=chain, address=address, files=len(paths))
        return paths

    async def store_partial(self, root, chain, address, metadata, sources) -> List[str]:
        paths = await self.apply(self.plan_partial(root, chain, address, metadata, sources))
        log.info("stored_partial_match", loc="[STOREDATA]", chain=chain, address=address, files=len(paths))
        return paths

    async def lookup(self, root: str, chain: str, address: str) -> Optional[MatchStatus]:
        """Stored match status for (chain, address), preferring a full match."""
        for status in (MatchStatus.perfect, MatchStatus.partial):
            path = join_path(self.match_dir(root, chain, address, status), "metadata.json")
            if await self.repository.exists(path):
                return status
        return None


__all__ = ["StorageLayout", "sanitize_path", "join_path", "WriteOp", "RepositoryWriter"]
