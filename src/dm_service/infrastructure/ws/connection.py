"""Connection handle wrapping a Starlette WebSocket."""
from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from dm_service.domain.events.realtime import RealtimeEvent
from dm_service.infrastructure.ws.protocol import WsOutbound, encode_event

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """Implements application.ports.realtime.Connection.

    Sends are serialized per socket so events routed from different
    handlers keep the order in which they were pushed.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket
        self._lock = asyncio.Lock()

    async def push(self, event: RealtimeEvent) -> None:
        await self.send(encode_event(event))

    async def send(self, envelope: WsOutbound) -> None:
        raw = envelope.model_dump_json()
        async with self._lock:
            await self._ws.send_text(raw)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._ws.application_state == WebSocketState.DISCONNECTED:
            return
        async with self._lock:
            await self._ws.close(code=code, reason=reason)
