"""
Adapters for the external systems the verification pipeline depends on.

This package contains thin, testable facades so the service layer stays
framework-agnostic:

- chain_rpc    : JSON-RPC access to EVM chains (eth_getCode), chain table and registry
- solc_compile : Solidity standard-JSON compilation via py-solc-x
- code_hash    : Keccak-256 content digests for uploaded files

Submodules are loaded lazily via PEP 562 (__getattr__), so importing the
package does not pull in httpx or solcx.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

# Public attributes resolved lazily
__all__ = [
    "chain_rpc",
    "solc_compile",
    "code_hash",
]


def __getattr__(name: str):
    if name in __all__:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    # Present lazy members in dir()
    return sorted(list(globals().keys()) + __all__)


if TYPE_CHECKING:
    from . import chain_rpc, code_hash, solc_compile
