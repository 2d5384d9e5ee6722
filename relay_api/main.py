from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .endpoints import (
    chart_router,
    export_router,
    health_router,
    messages_router,
    publish_router,
    stats_router,
    stream_router,
)
from .errors import InvalidQueryError, RelayError, ViewNotFoundError
from .service import RelayService

logger = logging.getLogger(__name__)


def create_app(service: Optional[RelayService] = None) -> FastAPI:
    """Construye la app. Sin ``service`` explícito se crea desde el entorno al arrancar."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = app.state.service
        if svc is None:
            svc = RelayService()
            app.state.service = svc
        # connect() espera hasta unos segundos al broker: fuera del event loop
        await run_in_threadpool(svc.start)
        try:
            yield
        finally:
            await run_in_threadpool(svc.stop)

    app = FastAPI(title="Furnace Telemetry Relay", version="0.1.0", lifespan=lifespan)
    app.state.service = service

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # Formato de error del dashboard: {success: false, error}
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RelayError)
    async def relay_error(request: Request, exc: RelayError):
        if isinstance(exc, InvalidQueryError):
            status = 400
        elif isinstance(exc, ViewNotFoundError):
            status = 404
        else:
            logger.exception("[API] Unhandled relay error: %s", exc)
            status = 500
        return JSONResponse(status_code=status, content={"success": False, "error": str(exc)})

    app.include_router(health_router)
    app.include_router(messages_router)
    app.include_router(stats_router)
    app.include_router(export_router)
    app.include_router(publish_router)
    app.include_router(stream_router)
    app.include_router(chart_router)
    return app


app = create_app()
