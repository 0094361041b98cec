from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI

from sugoroku.api import router as api_router
from sugoroku.api.routes.sessions import get_registry
from sugoroku.core.config.settings import settings
from sugoroku.core.logging.setup import configure_logging

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    log.info("app.startup", environment=settings.env, saves_dir=str(settings.saves_dir))
    yield
    # flush every live session before the process goes away
    registry = get_registry()
    for handle in registry.list():
        with handle.lock:
            handle.close()
    log.info("app.shutdown", sessions_closed=len(registry))


def create_app() -> FastAPI:
    """
    Application factory: logging, then the API under /api.
    """
    configure_logging(level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Sugoroku Core",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


# ASGI entrypoint
app = create_app()
