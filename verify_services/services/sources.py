"""
Metadata selection and source reconstruction.

- select_metadata(files) -> [MetadataDescriptor]
    Keeps every upload that parses as a JSON object whose ``language`` is
    Solidity. Anything else is simply not metadata and is skipped.

- assemble(descriptor, files) -> {file name: content}
    Resolves every source the descriptor declares, either from its inline
    ``content`` or by looking its declared keccak256 up in the uploads, and
    checks each against its declared digest. The result holds exactly the
    declared file names; unreferenced uploads are ignored.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from ..adapters.code_hash import RawFile, content_digest, digests_equal
from ..errors import NoMetadataFound, SourceHashMismatch, SourceNotFound
from ..logging import get_logger
from ..models.metadata import SOLIDITY, MetadataDescriptor

log = get_logger(__name__)


def select_metadata(files: Iterable[RawFile]) -> List[MetadataDescriptor]:
    found: List[MetadataDescriptor] = []
    for raw in files:
        try:
            descriptor = MetadataDescriptor.parse(bytes(raw) if not isinstance(raw, str) else raw)
        except ValueError:
            continue
        if descriptor.language == SOLIDITY:
            found.append(descriptor)
    if not found:
        raise NoMetadataFound()
    log.debug("metadata_selected", loc="[FIND]", count=len(found))
    return found


def _index_by_digest(files: Iterable[RawFile]) -> Dict[str, str]:
    index: Dict[str, str] = {}
    for raw in files:
        if isinstance(raw, str):
            text = raw
        else:
            try:
                text = bytes(raw).decode("utf-8")
            except UnicodeDecodeError:
                continue
        index.setdefault(content_digest(raw), text)
    return index


def assemble(descriptor: MetadataDescriptor, files: Iterable[RawFile]) -> Dict[str, str]:
    """
    Raises
    ------
    SourceHashMismatch
        Inline content does not hash to its declared keccak256.
    SourceNotFound
        No upload hashes to a declared keccak256.
    """
    by_hash = _index_by_digest(files)
    sources: Dict[str, str] = {}
    for file_name, entry in descriptor.sources.items():
        if entry.content is not None:
            actual = content_digest(entry.content)
            if not digests_equal(actual, entry.keccak256):
                raise SourceHashMismatch(file_name, entry.keccak256, actual)
            sources[file_name] = entry.content
            continue
        content = by_hash.get(entry.keccak256.strip().lower())
        if content is None:
            raise SourceNotFound(file_name, entry.keccak256)
        sources[file_name] = content
    log.debug("sources_assembled", loc="[REARRANGE]", files=sorted(sources))
    return sources


__all__ = ["select_metadata", "assemble"]
