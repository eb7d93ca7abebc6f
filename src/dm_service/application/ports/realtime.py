from __future__ import annotations

from typing import Protocol
from uuid import UUID

from dm_service.domain.events.realtime import RealtimeEvent


class Connection(Protocol):
    """Push-capable handle for one live client channel."""

    async def push(self, event: RealtimeEvent) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class EventPublisher(Protocol):
    """Best-effort delivery of real-time events to connected users."""

    def is_online(self, user_id: UUID) -> bool: ...

    async def emit_to_user(self, user_id: UUID, event: RealtimeEvent) -> bool: ...
