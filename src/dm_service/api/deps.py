"""FastAPI dependency injection helpers."""
from __future__ import annotations

from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Annotated, AsyncIterator, Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dm_service.application.dto.principal import Principal
from dm_service.application.ports.auth import TokenVerifier
from dm_service.application.ports.storage import ImageStore
from dm_service.application.uow import UnitOfWork
from dm_service.config import settings
from dm_service.infrastructure.auth.hs256_verifier import HS256Verifier
from dm_service.infrastructure.auth.jwks_verifier import JWKSVerifier
from dm_service.infrastructure.db.session import AsyncSessionLocal
from dm_service.infrastructure.db.uow import SqlAlchemyUoW
from dm_service.infrastructure.storage.s3_image_store import S3ImageStore
from dm_service.infrastructure.ws.event_router import EventRouter

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]

UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]


@asynccontextmanager
async def _session_uow() -> AsyncIterator[UnitOfWork]:
    async with AsyncSessionLocal() as session:
        async with SqlAlchemyUoW(session) as uow:
            yield uow


def get_uow_factory() -> UoWFactory:
    """Per-event units of work for long-lived WebSocket handlers."""
    return _session_uow


UoWFactoryDep = Annotated[UoWFactory, Depends(get_uow_factory)]


def get_event_router(request: Request) -> EventRouter:
    return request.app.state.events


EventsDep = Annotated[EventRouter, Depends(get_event_router)]


_image_store: ImageStore | None = None


def get_image_store() -> ImageStore | None:
    global _image_store  # noqa: PLW0603
    if _image_store is None and settings.image_storage_enabled:
        _image_store = S3ImageStore(
            bucket=settings.STORAGE_BUCKET or "",
            public_url=settings.STORAGE_PUBLIC_URL or "",
            access_key=settings.STORAGE_ACCESS_KEY or "",
            secret_key=settings.STORAGE_SECRET_KEY or "",
            endpoint=settings.STORAGE_ENDPOINT,
            region=settings.STORAGE_REGION,
        )
    return _image_store


ImagesDep = Annotated[ImageStore | None, Depends(get_image_store)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
