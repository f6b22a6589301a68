"""
verify_services.services
========================

Service layer of the verification pipeline, exposed as lazy submodules so
importing `verify_services.services` does not pull in solcx or httpx.

Public submodules
-----------------
- sources : metadata selection and hash-checked source reconstruction
- compile : standard-JSON input derivation and output extraction
- matcher : perfect / partial bytecode comparison and the address scan
- locator : content address (swarm / ipfs) from the metadata trailer
- verify  : the Pipeline orchestrator
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["sources", "compile", "matcher", "locator", "verify"]


def __getattr__(name: str):
    if name in __all__:
        return import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(list(globals().keys()) + __all__)


if TYPE_CHECKING:  # pragma: no cover
    from . import compile as compile
    from . import locator as locator
    from . import matcher as matcher
    from . import sources as sources
    from . import verify as verify
