from __future__ import annotations

import os
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from fastapi import APIRouter, Request, Response, status

from .. import version as svc_version
from ..logging import get_logger
from ..storage.fs import FileRepository

log = get_logger(__name__)
router = APIRouter(tags=["health"])

_PROCESS_START = time.time()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uptime_seconds() -> float:
    return max(0.0, time.time() - _PROCESS_START)


def _check_repository(cfg: Any) -> Tuple[bool, Dict[str, Any]]:
    """
    The configured REPOSITORY_PATH exists (or can be created) and is writable.
    """
    root = str(cfg.repository_path)
    info: Dict[str, Any] = {"path": root}
    ok = FileRepository().is_writable(root)
    if not ok:
        info["error"] = "not writable"
    return ok, info


def _version_blob() -> Dict[str, Any]:
    return {
        "service": "verify-services",
        "version": svc_version.__version__,
        "git": svc_version.git_describe(),
        "python": {
            "version": "{}.{}.{}".format(*sys.version_info[:3]),
            "impl": sys.implementation.name,
        },
        "started_at": datetime.fromtimestamp(_PROCESS_START, tz=timezone.utc).isoformat(),
        "now": _utcnow_iso(),
        "uptime_seconds": round(_uptime_seconds(), 3),
    }


@router.get("/healthz", summary="Liveness check", response_model=None)
def healthz() -> Dict[str, Any]:
    """
    Always 200 while the process is serving requests.
    """
    return {"status": "ok", "service": "verify-services", "version": svc_version.__version__}


@router.get("/version", summary="Service version", response_model=None)
def version(request: Request) -> Dict[str, Any]:
    meta = _version_blob()
    cfg = request.app.state.config
    meta["storage_layout"] = cfg.storage_layout.value
    meta["chains"] = sorted(request.app.state.pipeline.registry)
    meta["pid"] = os.getpid()
    return meta


@router.get("/readyz", summary="Readiness check", response_model=None)
def readyz(request: Request, response: Response) -> Dict[str, Any]:
    """
    200 when the repository is writable and at least one chain reader (or
    offline mode) is configured; 503 otherwise.
    """
    cfg = request.app.state.config
    checks: Dict[str, Dict[str, Any]] = {}

    ok, info = _check_repository(cfg)
    checks["repository"] = {"ok": ok, **info}

    chains = sorted(request.app.state.pipeline.registry)
    chains_ok = bool(chains) or bool(cfg.offline)
    checks["chains"] = {"ok": chains_ok, "configured": chains, "offline": bool(cfg.offline)}

    ok_all = ok and chains_ok
    if not ok_all:
        log.warning("readiness_degraded", checks=checks)
    response.status_code = status.HTTP_200_OK if ok_all else status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ok" if ok_all else "degraded",
        "now": _utcnow_iso(),
        "uptime_seconds": round(_uptime_seconds(), 3),
        "checks": checks,
    }


__all__ = ["router"]
