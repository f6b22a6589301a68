from __future__ import annotations

"""
Verify Routers

Endpoints:
  - POST /verify                    : verify sources against on-chain code and store them
  - GET  /verify/{chain}/{address}  : stored match status for a contract

These are thin shims over `verify_services.services.verify.Pipeline`.
"""

from fastapi import APIRouter, Path, Request

from ..adapters.chain_rpc import resolve_chain
from ..errors import ApiError, InputValidationError, NotFound
from ..logging import get_logger
from ..models.common import checksum_address
from ..models.verify import LookupResult, Match, VerifyRequest

log = get_logger(__name__)
router = APIRouter(tags=["verify"])


@router.post("/verify", summary="Verify a contract", response_model=Match)
async def post_verify(req: VerifyRequest, request: Request) -> Match:
    """
    Recompile the submitted sources and compare them with the code at the
    candidate addresses. Returns the first matching address and whether it
    matched perfectly or partially.
    """
    state = request.app.state
    data = req.to_input(str(state.config.repository_path))
    try:
        match = await state.pipeline.inject(data)
    except ApiError as e:
        state.metrics.record_verification(e.code)
        raise
    state.metrics.record_verification(match.status.value if match.status else "none")
    return match


@router.get(
    "/verify/{chain}/{address}",
    summary="Get stored verification status",
    response_model=LookupResult,
)
async def get_verify(
    request: Request,
    chain: str = Path(..., description="Chain name or numeric id."),
    address: str = Path(..., pattern=r"^0x[0-9a-fA-F]{40}$", description="Contract address."),
) -> LookupResult:
    state = request.app.state
    spec = resolve_chain(chain)
    try:
        checksummed = checksum_address(address)
    except ValueError:
        raise InputValidationError(f"Invalid address: {address}", details={"address": address}) from None
    status = await state.pipeline.writer.lookup(str(state.config.repository_path), chain, checksummed)
    if status is None:
        raise NotFound("Verified contract", details={"chain": chain, "address": checksummed})
    return LookupResult(chain=spec.key, address=checksummed, status=status)


__all__ = ["router"]
