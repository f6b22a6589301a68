"""
Solidity compiler adapter (py-solc-x).

`SolcCompiler.compile(version, standard_input)` runs solc's standard-JSON
interface for the exact release named in a metadata document and returns the
raw standard-JSON output. Deriving the input and interpreting the output is
the caller's job (see ``services.compile``).

Typical usage:
    compiler = SolcCompiler()
    output = await compiler.compile("0.6.12+commit.27d51765", standard_input)

Releases are installed on first use into py-solc-x's default directory (or
`install_dir`). Compilation runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import solcx
from solcx.exceptions import SolcError, SolcInstallationError

from ..errors import CompilationError
from ..logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class Compiler(Protocol):
    async def compile(self, version: str, standard_input: Dict[str, Any]) -> Dict[str, Any]:
        ...


def release_version(version: str) -> str:
    """
    "v0.6.12+commit.27d51765" -> "0.6.12". Nightly suffixes are dropped too.
    """
    v = str(version).strip()
    if v.startswith("v"):
        v = v[1:]
    v = v.split("+", 1)[0]
    return v.split("-", 1)[0]


class SolcCompiler:
    def __init__(self, install_dir: Optional[Path] = None):
        self._install_dir = install_dir
        self._install_lock = asyncio.Lock()

    def _ensure_installed(self, version: str) -> Path:
        installed = {str(v) for v in solcx.get_installed_solc_versions(self._install_dir)}
        if version not in installed:
            log.info("solc_install", loc="[RECOMPILE]", version=version)
            solcx.install_solc(version, solcx_binary_path=self._install_dir)
        return solcx.get_executable(version, solcx_binary_path=self._install_dir)

    async def compile(self, version: str, standard_input: Dict[str, Any]) -> Dict[str, Any]:
        release = release_version(version)
        if not release:
            raise CompilationError("Metadata does not name a compiler version", details={"version": version})

        async with self._install_lock:
            try:
                binary = await asyncio.to_thread(self._ensure_installed, release)
            except (SolcInstallationError, OSError) as e:
                raise CompilationError(
                    f"Could not install solc {release}: {e}", details={"version": version}
                ) from e

        try:
            return await asyncio.to_thread(
                solcx.compile_standard,
                standard_input,
                solc_binary=binary,
            )
        except SolcError as e:
            raise CompilationError(
                f"Compiler error: {getattr(e, 'message', e)}",
                details={"version": version},
            ) from e


__all__ = ["Compiler", "SolcCompiler", "release_version"]
