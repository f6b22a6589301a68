"""
verify_services.storage
=======================

Storage subsystem for the verified-contract repository.

This package exposes:
- A minimal `Repository` protocol the pipeline writes through.
- `layout` : the deterministic path scheme (current and legacy) and `RepositoryWriter`.
- `fs`     : `FileRepository`, a local filesystem backend with atomic overwrites.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Repository(Protocol):
    """
    Key/value writer addressed by slash-separated paths.

    Writes MUST overwrite existing content and create intermediate directories.
    """

    async def write(self, path: str, data: bytes) -> None:
        ...

    async def exists(self, path: str) -> bool:
        ...


__all__ = ["Repository"]
