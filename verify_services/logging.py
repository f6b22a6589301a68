from __future__ import annotations

"""
Structured logging for Verify Services.

structlog renders every event (ours and stdlib ones from uvicorn / httpx) as
one JSON line, or as colored console output for local runs. Pipeline events
carry a ``loc`` tag naming the step that emitted them, and the submission's
chain is merged in from contextvars:

    log = get_logger(__name__)
    log.warning("bytecode_read_failed", loc="[MATCH]", address="0x...", error="...")

Environment
-----------
- LOG_LEVEL:  DEBUG, INFO, WARNING, ERROR (default INFO)
- LOG_FORMAT: "json" (default) or "console"
"""

import logging
import os
from typing import Any, Dict, List, Optional

import structlog

SERVICE = "verify-services"
REDACT_KEYS = {"authorization", "infura_id", "api_key", "token"}
QUIET_LOGGERS = ("asyncio", "httpcore", "httpx")


def _redact_secrets(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key in REDACT_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = "***"
    return event_dict


def _add_service(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict.setdefault("service", SERVICE)
    return event_dict


def _shared_processors(json_output: bool) -> List[Any]:
    processors: List[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        _add_service,
        _redact_secrets,
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(*, level: Optional[str | int] = None, log_format: Optional[str] = None) -> None:
    """
    Configure structlog and route stdlib logging through the same renderer.
    Safe to call more than once; the last call wins.
    """
    level = level or os.getenv("LOG_LEVEL", "").upper() or "INFO"
    json_output = (log_format or os.getenv("LOG_FORMAT") or "json").lower() != "console"

    shared = _shared_processors(json_output)
    renderer = structlog.processors.JSONRenderer(sort_keys=True) if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, *shared, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        lg.propagate = False
        lg.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    log = structlog.get_logger()
    return log.bind(logger=name) if name else log


def bind_submission_context(**kv: Any) -> None:
    """Bind submission-scoped values (chain, ...) for every event logged in this task."""
    structlog.contextvars.bind_contextvars(**kv)


def clear_submission_context(*keys: str) -> None:
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


__all__ = [
    "setup_logging",
    "get_logger",
    "bind_submission_context",
    "clear_submission_context",
]
