from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from dm_service.api.middleware.correlation_id import CorrelationIdMiddleware
from dm_service.api.middleware.metrics import RequestTimingMiddleware
from dm_service.api.v1.routers import contacts, health, messages, ws
from dm_service.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from dm_service.config import settings
from dm_service.infrastructure.db.session import engine
from dm_service.infrastructure.ws.event_router import EventRouter
from dm_service.infrastructure.ws.presence import PresenceTracker
from dm_service.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    yield

    if len(app.state.registry):
        logger.info("Shutting down with %d live connections", len(app.state.registry))
    await engine.dispose()
    logger.info("Database engine disposed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Direct Messaging Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # One registry per process; presence and routing share it.
    registry = ConnectionRegistry()
    events = EventRouter(registry)
    app.state.registry = registry
    app.state.events = events
    app.state.presence = PresenceTracker(registry, events)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(contacts.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": exc.detail})

    @app.exception_handler(UpstreamError)
    async def _upstream(_req: Request, exc: UpstreamError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": exc.detail})

    @app.exception_handler(SQLAlchemyError)
    async def _store_failure(req: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Message store failure on %s %s", req.method, req.url.path, exc_info=exc)
        return JSONResponse(status_code=502, content={"detail": "Message store unavailable"})
