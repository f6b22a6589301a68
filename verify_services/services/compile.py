"""
Recompilation of a verified source set under its metadata's exact settings.

The compiler input is derived from, never written into, the descriptor:

    settings         copy of metadata.settings without compilationTarget
    outputSelection  {file: {contract: [evm.bytecode, evm.deployedBytecode, metadata]}}
    settings.metadata defaults to {}
    sources          {file name: {"content": text}}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from ..adapters.solc_compile import Compiler
from ..errors import CompilationError
from ..logging import get_logger
from ..models.common import ensure_0x
from ..models.metadata import MetadataDescriptor

log = get_logger(__name__)

OUTPUT_SELECTION = ["evm.bytecode", "evm.deployedBytecode", "metadata"]


@dataclass(frozen=True)
class CompilationResult:
    bytecode: str
    deployed_bytecode: str
    metadata: str


def build_standard_input(descriptor: MetadataDescriptor, sources: Mapping[str, str]) -> Dict[str, Any]:
    file_name, contract_name = descriptor.compilation_target()
    settings = descriptor.settings
    settings.pop("compilationTarget", None)
    settings["outputSelection"] = {file_name: {contract_name: list(OUTPUT_SELECTION)}}
    if not settings.get("metadata"):
        settings["metadata"] = {}
    return {
        "language": descriptor.language,
        "sources": {name: {"content": content} for name, content in sources.items()},
        "settings": settings,
    }


def _fatal_diagnostics(output: Mapping[str, Any]) -> List[str]:
    out: List[str] = []
    for err in output.get("errors") or []:
        if isinstance(err, dict) and err.get("severity") == "error":
            out.append(str(err.get("formattedMessage") or err.get("message") or err))
    return out


def _object(evm: Mapping[str, Any], key: str) -> str:
    obj = (evm.get(key) or {}).get("object") or ""
    return ensure_0x(str(obj)).lower()


async def recompile(
    compiler: Compiler, descriptor: MetadataDescriptor, sources: Mapping[str, str]
) -> CompilationResult:
    """
    Raises AmbiguousOrMissingTarget before invoking the compiler, and
    CompilationError on fatal diagnostics or when the target contract is
    missing from the output.
    """
    file_name, contract_name = descriptor.compilation_target()
    standard_input = build_standard_input(descriptor, sources)
    log.info(
        "recompiling",
        loc="[RECOMPILE]",
        version=descriptor.compiler_version,
        target=f"{file_name}:{contract_name}",
    )
    output = await compiler.compile(descriptor.compiler_version, standard_input)

    fatal = _fatal_diagnostics(output)
    if fatal:
        raise CompilationError(fatal[0], details={"errors": fatal})

    contract = ((output.get("contracts") or {}).get(file_name) or {}).get(contract_name)
    if not contract:
        raise CompilationError(
            f"Compiler output has no contract {contract_name} in {file_name}",
            details={"target": {file_name: contract_name}},
        )
    evm = contract.get("evm") or {}
    return CompilationResult(
        bytecode=_object(evm, "bytecode"),
        deployed_bytecode=_object(evm, "deployedBytecode"),
        metadata=str(contract.get("metadata") or "").strip(),
    )


__all__ = ["CompilationResult", "OUTPUT_SELECTION", "build_standard_input", "recompile"]
