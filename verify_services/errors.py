from __future__ import annotations

"""
Error hierarchy for Verify Services.

Every failure a submission can hit is an ``ApiError``. The errors are
framework-agnostic; the FastAPI handlers in ``middleware/errors.py`` render them
as RFC 7807 "problem+json" bodies.

Usage
-----
    from verify_services.errors import SourceNotFound

    raise SourceNotFound("Token.sol", "0xabc...")

Design
------
- Every error has:
  - ``status_code`` (int): HTTP status
  - ``code`` (str): stable machine code (e.g., "source_not_found")
  - ``message`` (str): human-friendly summary
  - ``details`` (dict|None): structured diagnostics, always carrying ``loc``
    and the chain / address(es) involved when known
- ``to_problem()`` returns an RFC 7807 dict.

All verification errors are terminal for the submission they concern. The only
non-fatal condition in the pipeline (a failed on-chain read for one candidate
address) is modelled as a value, not an exception; see ``adapters.chain_rpc``.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence


DEFAULT_ERROR_DOCS_BASE = "https://docs.verify-services.dev/errors"


@dataclass
class ApiError(Exception):
    message: str
    status_code: int = 400
    code: str = "bad_request"
    details: Optional[Mapping[str, Any]] = None
    type_uri_base: str = DEFAULT_ERROR_DOCS_BASE

    def __post_init__(self) -> None:
        super().__init__(self.message)

    # keep exceptions hashable
    __hash__ = Exception.__hash__

    # --- RFC 7807 helpers -------------------------------------------------- #

    @property
    def loc(self) -> Optional[str]:
        return (self.details or {}).get("loc")

    def type_uri(self) -> str:
        return f"{self.type_uri_base}#{self.code}"

    def title(self) -> str:
        return {
            "bad_request": "Bad Request",
            "invalid_input": "Invalid Input",
            "no_metadata": "Metadata Not Found",
            "source_hash_mismatch": "Source Hash Mismatch",
            "source_not_found": "Source Not Found",
            "ambiguous_target": "Ambiguous Compilation Target",
            "compilation_failed": "Compilation Failed",
            "no_match": "No Bytecode Match",
            "metadata_reference_missing": "Metadata Reference Missing",
            "not_found": "Not Found",
            "rpc_error": "Upstream RPC Error",
        }.get(self.code, self.message or "Error")

    def to_problem(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "type": self.type_uri(),
            "title": self.title(),
            "status": self.status_code,
            "code": self.code,
            "detail": self.message,
        }
        if self.details:
            body["details"] = dict(self.details)
        return body


# ------------------------------ Generic types -------------------------------- #


class NotFound(ApiError):
    def __init__(self, what: str = "Resource", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=f"{what} not found", status_code=404, code="not_found", details=details)


class RpcError(ApiError):
    def __init__(self, message: str = "Upstream RPC error", *, details: Optional[Mapping[str, Any]] = None, status: int = 502):
        super().__init__(message=message, status_code=status, code="rpc_error", details=details)


# ---------------------------- Verification types ----------------------------- #


class InputValidationError(ApiError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=400, code="invalid_input", details=details)


class NoMetadataFound(ApiError):
    def __init__(self) -> None:
        super().__init__(
            message='Metadata file not found. Did you include "metadata.json"?',
            status_code=400,
            code="no_metadata",
            details={"loc": "[FIND]"},
        )


class SourceHashMismatch(ApiError):
    def __init__(self, file_name: str, expected: str, actual: str):
        super().__init__(
            message=f"Invalid content for file {file_name}",
            status_code=422,
            code="source_hash_mismatch",
            details={"loc": "[REARRANGE]", "file_name": file_name, "keccak256": expected, "actual": actual},
        )
        self.file_name = file_name


class SourceNotFound(ApiError):
    def __init__(self, file_name: str, keccak256: str):
        super().__init__(
            message=(
                f'The metadata file mentions a source file called "{file_name}" '
                f"that cannot be found in your upload.\nIts keccak256 hash is {keccak256}. "
                "Please try to find it and include it in the upload."
            ),
            status_code=422,
            code="source_not_found",
            details={"loc": "[REARRANGE]", "file_name": file_name, "keccak256": keccak256},
        )
        self.file_name = file_name
        self.keccak256 = keccak256


class AmbiguousOrMissingTarget(ApiError):
    def __init__(self, target: Optional[Mapping[str, str]] = None):
        count = len(target or {})
        reason = "is missing" if count == 0 else f"names {count} contracts"
        super().__init__(
            message=f"Could not determine compilation target from metadata: compilationTarget {reason}.",
            status_code=422,
            code="ambiguous_target",
            details={"loc": "[REFORMAT]", "target": dict(target or {})},
        )


class CompilationError(ApiError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        merged: Dict[str, Any] = {"loc": "[RECOMPILE]"}
        merged.update(details or {})
        super().__init__(message=message, status_code=422, code="compilation_failed", details=merged)


class NoMatch(ApiError):
    def __init__(self, target: Mapping[str, str], chain: str, addresses: Sequence[str]):
        super().__init__(
            message=(
                "Could not match on-chain deployed bytecode to recompiled bytecode for:\n"
                f"{json.dumps(dict(target), indent=1)}\n"
                "Addresses checked:\n"
                f"{json.dumps(list(addresses), indent=1)}"
            ),
            status_code=404,
            code="no_match",
            details={"loc": "[INJECT]", "chain": chain, "addresses": list(addresses), "target": dict(target)},
        )
        self.target = dict(target)
        self.addresses = list(addresses)


class MetadataReferenceMissing(ApiError):
    def __init__(self, chain: Optional[str] = None, address: Optional[str] = None):
        super().__init__(
            message="Re-compilation successful, but could not find reference to metadata file in cbor data.",
            status_code=500,
            code="metadata_reference_missing",
            details={"loc": "[STOREDATA]", "chain": chain, "address": address},
        )


__all__ = [
    "ApiError",
    "NotFound",
    "RpcError",
    "InputValidationError",
    "NoMetadataFound",
    "SourceHashMismatch",
    "SourceNotFound",
    "AmbiguousOrMissingTarget",
    "CompilationError",
    "NoMatch",
    "MetadataReferenceMissing",
]
