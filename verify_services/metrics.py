from __future__ import annotations

"""
Prometheus metrics and /metrics exporter for Verify Services.

Records
-------
- http_requests_total{method,path,status}
- http_request_duration_seconds{method,path,status}
- http_inprogress_requests{method,path}
- verifications_total{status}      perfect | partial | <error code>
- service_info

Usage
-----
    app = FastAPI()
    metrics = setup_metrics(app, service_version="0.3.0")
    metrics.record_verification("perfect")

Env
---
- PROMETHEUS_MULTIPROC_DIR: if set, use the multiprocess collector.
- METRICS_PATH: override the default /metrics path.
"""

import os
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI
from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, Histogram, Info, PlatformCollector,
                               ProcessCollector, generate_latest, multiprocess)
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send


class Metrics:
    """
    Holder for registry and metric objects. Exposed via app.state.metrics.
    """

    def __init__(self, service_name: str, service_version: Optional[str] = None) -> None:
        self.multiproc_dir = os.getenv("PROMETHEUS_MULTIPROC_DIR")
        self.registry = CollectorRegistry()

        if self.multiproc_dir:
            multiprocess.MultiProcessCollector(self.registry)
        else:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)

        # Gauges need multiprocess_mode under the multiprocess collector.
        gauge_kwargs: Dict[str, Any] = {"registry": self.registry}
        if self.multiproc_dir:
            gauge_kwargs["multiprocess_mode"] = "livesum"

        self.http_inprogress = Gauge(
            "http_inprogress_requests",
            "In-progress HTTP requests",
            ["method", "path"],
            **gauge_kwargs,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "path", "status"],
            # recompilation dominates; allow long tails
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self.registry,
        )
        self.verifications_total = Counter(
            "verifications_total",
            "Verification outcomes",
            ["status"],
            registry=self.registry,
        )

        self.service_info = Info("service", "Service metadata", registry=self.registry)
        payload = {"name": service_name}
        if service_version:
            payload["version"] = service_version
        self.service_info.info(payload)

    def record_verification(self, status: str) -> None:
        self.verifications_total.labels(status).inc()

    def render_latest(self) -> bytes:
        return generate_latest(self.registry)


def _extract_path_template(scope: Scope) -> str:
    """
    Low-cardinality route template (e.g. /verify/{chain}/{address}), falling
    back to the raw path.
    """
    route = scope.get("route")
    for attr in ("path_format", "path"):
        val = getattr(route, attr, None) if route is not None else None
        if isinstance(val, str) and val:
            return val
    return scope.get("path") or ""


class PrometheusMiddleware:
    def __init__(self, app: ASGIApp, metrics: Metrics):
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        start = time.perf_counter()
        status_code = 500

        async def send_wrapped(message: Dict[str, Any]) -> None:
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
            await send(message)

        path_in = _extract_path_template(scope)
        self.metrics.http_inprogress.labels(method, path_in).inc()
        try:
            await self.app(scope, receive, send_wrapped)
        finally:
            self.metrics.http_inprogress.labels(method, path_in).dec()
            # the route is only known once routing has run
            labels = (method, _extract_path_template(scope), str(status_code))
            self.metrics.http_requests_total.labels(*labels).inc()
            self.metrics.http_request_duration_seconds.labels(*labels).observe(time.perf_counter() - start)


def create_metrics_router(metrics: Metrics, path: str = "/metrics") -> APIRouter:
    router = APIRouter()

    @router.get(path, include_in_schema=False)
    async def metrics_endpoint() -> Response:
        return Response(content=metrics.render_latest(), media_type=CONTENT_TYPE_LATEST)

    return router


def setup_metrics(
    app: FastAPI,
    *,
    service_name: str = "verify-services",
    service_version: Optional[str] = None,
    path: Optional[str] = None,
) -> Metrics:
    """
    Create the registry, add the HTTP middleware, mount /metrics and store the
    `Metrics` instance in `app.state.metrics`.
    """
    metrics = Metrics(service_name=service_name, service_version=service_version)
    app.add_middleware(PrometheusMiddleware, metrics=metrics)
    app.include_router(create_metrics_router(metrics, path or os.getenv("METRICS_PATH") or "/metrics"))
    app.state.metrics = metrics
    return metrics


__all__ = ["Metrics", "PrometheusMiddleware", "create_metrics_router", "setup_metrics"]
