from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from dm_service.api.deps import UoWFactory, UoWFactoryDep, get_verifier
from dm_service.api.middleware.correlation_id import correlation_id_ctx, new_correlation_id
from dm_service.application.dto.principal import Principal
from dm_service.application.exceptions import AppError
from dm_service.config import settings
from dm_service.infrastructure.ws.connection import WebSocketConnection
from dm_service.infrastructure.ws.event_router import EventRouter
from dm_service.infrastructure.ws.presence import PresenceTracker
from dm_service.infrastructure.ws.protocol import (
    MarkAsReadData,
    TypingData,
    ViewingData,
    WsInbound,
    WsOutbound,
    error_envelope,
)
from dm_service.services import read_state_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

AUTH_FAILED_CLOSE_CODE = 4001


@dataclass(slots=True)
class ConnectionSession:
    """Everything an inbound-event handler needs about its connection."""

    principal: Principal
    connection: WebSocketConnection
    presence: PresenceTracker
    events: EventRouter
    uow_factory: UoWFactory

    @property
    def user_id(self) -> UUID:
        return self.principal.user_id


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    uow_factory: UoWFactoryDep,
    token: str = Query(...),
) -> None:
    # One correlation id per connection; HTTP middleware does not see websockets.
    correlation_id_ctx.set(new_correlation_id())
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason="Authentication failed")
        return

    await websocket.accept()
    session = ConnectionSession(
        principal=principal,
        connection=WebSocketConnection(websocket),
        presence=websocket.app.state.presence,
        events=websocket.app.state.events,
        uow_factory=uow_factory,
    )
    await session.presence.connect(session.user_id, session.connection)
    logger.debug("WS connected: %s", principal.principal_key)

    heartbeat_task = asyncio.create_task(
        _heartbeat(session.connection), name=f"ws-heartbeat-{principal.principal_key}",
    )
    try:
        await _read_loop(websocket, session)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.principal_key)
    finally:
        heartbeat_task.cancel()
        await session.presence.disconnect(session.user_id, session.connection)
        logger.debug("WS disconnected: %s", principal.principal_key)


async def _heartbeat(connection: WebSocketConnection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await connection.send(WsOutbound(type="pong", data={}))
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(ws: WebSocket, session: ConnectionSession) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await session.connection.send(error_envelope("invalid_payload"))
            continue

        handler = _HANDLERS.get(msg.type)
        if handler is None:
            await session.connection.send(error_envelope("unknown_type", type=msg.type))
            continue

        try:
            await handler(session, msg.data)
        except PydanticValidationError as exc:
            detail = exc.errors(include_url=False, include_context=False, include_input=False)
            await session.connection.send(
                error_envelope("invalid_data", type=msg.type, detail=detail),
            )
        except AppError as exc:
            await session.connection.send(
                error_envelope(type(exc).__name__, type=msg.type, detail=exc.detail),
            )
        except SQLAlchemyError:
            logger.exception("Store failure handling %s for %s", msg.type, session.principal.principal_key)
            await session.connection.send(
                error_envelope("UpstreamError", type=msg.type, detail="Message store unavailable"),
            )


async def _handle_ping(session: ConnectionSession, data: dict[str, Any]) -> None:
    await session.connection.send(WsOutbound(type="pong", data={}))


async def _handle_typing(session: ConnectionSession, data: dict[str, Any]) -> None:
    payload = TypingData.model_validate(data)
    await session.presence.start_typing(session.user_id, payload.receiver_id)


async def _handle_stop_typing(session: ConnectionSession, data: dict[str, Any]) -> None:
    payload = TypingData.model_validate(data)
    await session.presence.stop_typing(session.user_id, payload.receiver_id)


async def _handle_viewing_chat(session: ConnectionSession, data: dict[str, Any]) -> None:
    payload = ViewingData.model_validate(data)
    await session.presence.start_viewing(session.user_id, payload.chat_partner_id)


async def _handle_left_chat(session: ConnectionSession, data: dict[str, Any]) -> None:
    payload = ViewingData.model_validate(data)
    await session.presence.stop_viewing(session.user_id, payload.chat_partner_id)


async def _handle_mark_as_read(session: ConnectionSession, data: dict[str, Any]) -> None:
    payload = MarkAsReadData.model_validate(data)
    async with session.uow_factory() as uow:
        await read_state_service.mark_read(
            session.principal, payload.sender_id, uow, session.events,
        )


_HANDLERS: dict[str, Callable[[ConnectionSession, dict[str, Any]], Awaitable[None]]] = {
    "ping": _handle_ping,
    "typing": _handle_typing,
    "stopTyping": _handle_stop_typing,
    "viewingChat": _handle_viewing_chat,
    "leftChat": _handle_left_chat,
    "markAsRead": _handle_mark_as_read,
}
