"""
Bytecode / metadata builders and in-memory collaborator fakes used across the suite.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import cbor2

from verify_services.adapters.code_hash import content_digest

# ----------------------------
# Bytecode / metadata builders
# ----------------------------

LOGIC = "0x6080604052348015600f57600080fd5b50603f80601d6000396000f3fe6080604052600080fd"
IPFS_DIGEST = bytes.fromhex("1220" + "ab" * 32)
OTHER_IPFS_DIGEST = bytes.fromhex("1220" + "cd" * 32)
SOLC_VERSION = bytes([0, 6, 12])

ADDR1 = "0x" + "11" * 20
ADDR2 = "0x" + "22" * 20
ADDR3 = "0x" + "33" * 20

SOURCE_A = "pragma solidity ^0.6.0;\n\ncontract A {\n    uint256 public x;\n}\n"
SOURCE_LIB = "pragma solidity ^0.6.0;\n\nlibrary L {}\n"


def make_trailer(entries: Mapping[str, Any]) -> str:
    """Hex (no 0x) of a CBOR metadata map followed by its 2-byte big-endian length."""
    raw = cbor2.dumps(dict(entries))
    return raw.hex() + len(raw).to_bytes(2, "big").hex()


def make_bytecode(entries: Mapping[str, Any], logic: str = LOGIC) -> str:
    return logic + make_trailer(entries)


DEPLOYED = make_bytecode({"ipfs": IPFS_DIGEST, "solc": SOLC_VERSION})
DEPLOYED_OTHER_TRAILER = make_bytecode({"ipfs": OTHER_IPFS_DIGEST, "solc": SOLC_VERSION})


def make_metadata(
    sources: Mapping[str, str],
    target: Optional[Dict[str, str]] = None,
    *,
    inline: bool = False,
    language: str = "Solidity",
    version: str = "0.6.12+commit.27d51765",
) -> Dict[str, Any]:
    entries: Dict[str, Any] = {}
    for name, content in sources.items():
        entry: Dict[str, Any] = {"keccak256": content_digest(content), "urls": []}
        if inline:
            entry["content"] = content
        entries[name] = entry
    return {
        "compiler": {"version": version},
        "language": language,
        "output": {"abi": []},
        "settings": {
            "compilationTarget": dict(target if target is not None else {"A.sol": "A"}),
            "evmVersion": "istanbul",
            "libraries": {},
            "metadata": {"bytecodeHash": "ipfs"},
            "optimizer": {"enabled": True, "runs": 200},
            "remappings": [],
        },
        "sources": entries,
        "version": 1,
    }


def metadata_text(sources: Mapping[str, str] = None, **kw: Any) -> str:
    return json.dumps(make_metadata(sources or {"A.sol": SOURCE_A}, **kw))


# ----------------------------
# Collaborator fakes
# ----------------------------


class FakeReader:
    """ChainReader over a dict; a value may be an exception to raise instead."""

    def __init__(self, codes: Optional[Mapping[str, Union[str, BaseException]]] = None, delay: float = 0.0):
        self.codes = {k.lower(): v for k, v in (codes or {}).items()}
        self.delay = delay
        self.calls: List[str] = []
        self.closed = False

    async def get_code(self, address: str) -> str:
        self.calls.append(address)
        if self.delay:
            await asyncio.sleep(self.delay)
        value = self.codes.get(address.lower(), "0x")
        if isinstance(value, BaseException):
            raise value
        return value

    async def close(self) -> None:
        self.closed = True


class FakeCompiler:
    """Compiler that echoes a fixed deployed bytecode for whatever target is selected."""

    def __init__(self, deployed: str = DEPLOYED, *, errors: Optional[List[Dict[str, Any]]] = None, omit_contract: bool = False):
        self.deployed = deployed
        self.errors = errors or []
        self.omit_contract = omit_contract
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def compile(self, version: str, standard_input: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((version, standard_input))
        contracts: Dict[str, Any] = {}
        if not self.omit_contract:
            for file_name, selection in standard_input["settings"]["outputSelection"].items():
                for contract_name in selection:
                    contracts.setdefault(file_name, {})[contract_name] = {
                        "evm": {
                            "bytecode": {"object": "6080604052" + self.deployed[2:]},
                            "deployedBytecode": {"object": self.deployed[2:]},
                        },
                        "metadata": json.dumps({"compiled": file_name, "contract": contract_name}) + "\n",
                    }
        out: Dict[str, Any] = {"contracts": contracts, "sources": {}}
        if self.errors:
            out["errors"] = self.errors
        return out


class MemoryRepository:
    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}

    async def write(self, path: str, data: bytes) -> None:
        self.files[path] = data

    async def exists(self, path: str) -> bool:
        return path in self.files

