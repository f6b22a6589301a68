from __future__ import annotations

"""
Exception -> RFC 7807 "problem+json" mappers for FastAPI.

- ApiError subclasses render their own `to_problem()` body.
- HTTPException and request validation errors get a minimal problem body.
- Anything else is a 500 whose stack trace is logged, never returned.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..errors import ApiError
from ..logging import get_logger

PROBLEM_CT = "application/problem+json"

log = get_logger(__name__)

_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def _problem(
    request: Request,
    *,
    status: int,
    detail: str = "",
    title: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": title or _TITLES.get(status, "Error"),
        "status": status,
        "detail": detail,
        "instance": str(request.url.path),
    }
    for k, v in (extras or {}).items():
        body.setdefault(k, v)
    return body


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    body = exc.to_problem()
    body["instance"] = str(request.url.path)
    if exc.status_code >= 500:
        log.error("api_error", code=exc.code, status=exc.status_code, loc=exc.loc, detail=exc.message)
    else:
        log.warning("api_error", code=exc.code, status=exc.status_code, loc=exc.loc, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body), media_type=PROBLEM_CT)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body = _problem(request, status=int(exc.status_code), detail=str(exc.detail or ""))
    return JSONResponse(status_code=exc.status_code, content=body, media_type=PROBLEM_CT)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = _problem(
        request,
        status=422,
        detail="Request validation failed.",
        extras={"errors": jsonable_encoder(exc.errors())},
    )
    log.warning("validation_error", path=body["instance"], errors=len(body["errors"]))
    return JSONResponse(status_code=422, content=body, media_type=PROBLEM_CT)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    body = _problem(request, status=500, detail="An unexpected error occurred.")
    log.exception("unhandled_exception", path=body["instance"])
    return JSONResponse(status_code=500, content=body, media_type=PROBLEM_CT)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _handle_api_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected_error)


__all__ = ["install_error_handlers", "PROBLEM_CT"]
