from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .config import Settings, load_config
from .logging import get_logger, setup_logging
from .metrics import setup_metrics
from .middleware.errors import install_error_handlers
from .routers.health import router as health_router
from .routers.verify import router as verify_router
from .services.verify import Pipeline, build_pipeline
from .version import __version__

log = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    App lifespan: the pipeline is built by the factory; shut its chain readers down on exit.
    """
    log.info("startup", version=__version__, chains=sorted(app.state.pipeline.registry))
    try:
        yield
    finally:
        await app.state.pipeline.aclose()
        log.info("shutdown")


def create_app(config: Optional[Settings] = None, pipeline: Optional[Pipeline] = None) -> FastAPI:
    """
    FastAPI factory. Mounts routers, error handlers and metrics.

    `pipeline` defaults to one wired from `config` (chain registry, solc,
    filesystem repository).
    """
    cfg = config or load_config()
    setup_logging(level=cfg.log_level)

    app = FastAPI(
        title="Verify Services",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.config = cfg
    app.state.pipeline = pipeline or build_pipeline(cfg)

    install_error_handlers(app)
    setup_metrics(app, service_version=__version__)

    app.include_router(health_router, prefix="")
    app.include_router(verify_router, prefix="")
    return app
