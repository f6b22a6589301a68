"""
Verify Services
===============

Source verification for deployed EVM contracts: recompile submitted Solidity
sources under their metadata's exact settings, match the result against
on-chain bytecode, and store verified files in a content-addressed repository.

This package exposes:

- ``__version__``: semantic version string
- ``build_app()``: convenience creator for a configured FastAPI app

Prefer importing submodules directly for specific concerns:
``verify_services.services.verify``, ``verify_services.config``, etc.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__", "build_app"]


def build_app():
    """
    Create and return a fully configured FastAPI application.

    Imports lazily so consumers that only need version metadata do not pull
    in FastAPI.
    """
    from .app import create_app

    return create_app()
