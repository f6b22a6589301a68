"""
Compiler metadata descriptor.

A metadata document is the JSON the Solidity compiler emits next to the
bytecode. The fields the pipeline relies on:

    {
      "language": "Solidity",
      "compiler": {"version": "0.6.12+commit.27d51765"},
      "settings": {"compilationTarget": {"A.sol": "A"}, "optimizer": {...}, ...},
      "sources": {"A.sol": {"keccak256": "0x...", "content": "... (optional)"}}
    }

``MetadataDescriptor`` is immutable: it keeps a private deep copy of the parsed
document and hands out deep copies, so deriving compiler input can never alter
the descriptor a submission was validated against.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from ..errors import AmbiguousOrMissingTarget

SOLIDITY = "Solidity"


@dataclass(frozen=True)
class SourceEntry:
    keccak256: str
    content: Optional[str] = None


def _check_shape(doc: Mapping[str, Any]) -> None:
    """Raise ValueError unless the fields the pipeline reads have the expected JSON types."""
    for key in ("compiler", "settings", "sources"):
        if doc.get(key) is not None and not isinstance(doc[key], dict):
            raise ValueError(f"metadata field {key!r} must be an object")
    target = (doc.get("settings") or {}).get("compilationTarget")
    if target is not None and not isinstance(target, dict):
        raise ValueError("settings.compilationTarget must be an object")
    for name, entry in (doc.get("sources") or {}).items():
        if not isinstance(entry, dict):
            raise ValueError(f"sources[{name!r}] must be an object")
        for field_name in ("keccak256", "content"):
            if entry.get(field_name) is not None and not isinstance(entry[field_name], str):
                raise ValueError(f"sources[{name!r}].{field_name} must be a string")


@dataclass(frozen=True)
class MetadataDescriptor:
    language: str
    compiler_version: str
    _document: Dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "MetadataDescriptor":
        """Raises ValueError when the document is not shaped like compiler metadata."""
        doc = copy.deepcopy(dict(document))
        _check_shape(doc)
        compiler = doc.get("compiler") or {}
        return cls(
            language=str(doc.get("language", "")),
            compiler_version=str(compiler.get("version", "")),
            _document=doc,
        )

    @classmethod
    def parse(cls, text: str | bytes) -> "MetadataDescriptor":
        """Parse JSON text. Raises ValueError on malformed JSON or a document of the wrong shape."""
        doc = json.loads(text)
        if not isinstance(doc, dict):
            raise ValueError("metadata document must be a JSON object")
        return cls.from_document(doc)

    @property
    def settings(self) -> Dict[str, Any]:
        """Deep copy of the compiler settings."""
        return copy.deepcopy(self._document.get("settings") or {})

    @property
    def compilation_target_map(self) -> Dict[str, str]:
        target = (self._document.get("settings") or {}).get("compilationTarget") or {}
        return {str(k): str(v) for k, v in target.items()}

    @property
    def sources(self) -> Dict[str, SourceEntry]:
        out: Dict[str, SourceEntry] = {}
        for name, entry in (self._document.get("sources") or {}).items():
            out[str(name)] = SourceEntry(
                keccak256=str(entry.get("keccak256", "")),
                content=entry.get("content") or None,
            )
        return out

    def compilation_target(self) -> Tuple[str, str]:
        """
        The single (file name, contract name) pair this metadata compiles.

        Raises AmbiguousOrMissingTarget when compilationTarget is absent, empty,
        or names more than one contract.
        """
        target = self.compilation_target_map
        if len(target) != 1:
            raise AmbiguousOrMissingTarget(target)
        (file_name, contract_name), = target.items()
        if not contract_name:
            raise AmbiguousOrMissingTarget(target)
        return file_name, contract_name

    def to_document(self) -> Dict[str, Any]:
        return copy.deepcopy(self._document)


__all__ = ["SOLIDITY", "SourceEntry", "MetadataDescriptor"]
