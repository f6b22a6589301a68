"""
Filesystem-backed repository.

- Paths are slash-separated; the root may be relative or absolute.
- Atomic writes via temp files + os.replace; a reader never observes a
  half-written file, and concurrent writers of identical content are safe.
- Blocking file I/O runs in a worker thread so the event loop is not stalled.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..logging import get_logger

log = get_logger(__name__)


@contextmanager
def _temp_under(path: Path) -> Iterator[Path]:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("wb", delete=False, dir=path.parent, prefix=".tmp-") as tf:
        tmp_path = Path(tf.name)
    try:
        yield tmp_path
    finally:
        tmp_path.unlink(missing_ok=True)


def _finalize_write(tmp: Path, final_path: Path) -> None:
    os.replace(tmp, final_path)
    # Relaxed perms: 0644
    os.chmod(final_path, 0o644)


def write_atomic(path: Path, data: bytes) -> None:
    with _temp_under(path) as tmp:
        tmp.write_bytes(data)
        _finalize_write(tmp, path)


class FileRepository:
    """Repository over the local filesystem."""

    def __init__(self, base: str | Path | None = None):
        self._base = Path(base).expanduser() if base is not None else None

    def resolve(self, path: str) -> Path:
        p = Path(path)
        if self._base is not None and not p.is_absolute():
            p = self._base / p
        return p

    async def write(self, path: str, data: bytes) -> None:
        target = self.resolve(path)
        await asyncio.to_thread(write_atomic, target, bytes(data))
        log.debug("repository_write", path=str(target), size=len(data))

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).is_file)

    async def read(self, path: str) -> bytes:
        return await asyncio.to_thread(self.resolve(path).read_bytes)

    def is_writable(self, root: str | Path) -> bool:
        """True if files can be created under `root` (created if missing)."""
        p = self.resolve(str(root))
        try:
            p.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return os.access(p, os.W_OK)


__all__ = ["FileRepository", "write_atomic"]
