"""Best-effort routing of real-time events to live connections."""
from __future__ import annotations

import logging
from uuid import UUID

from dm_service.domain.events.realtime import RealtimeEvent
from dm_service.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class EventRouter:
    """Implements application.ports.realtime.EventPublisher.

    Events are at-most-once: an unreachable user or a failing push drops the
    event. Nothing is queued or retried; clients re-fetch on reconnect.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    def is_online(self, user_id: UUID) -> bool:
        return self._registry.is_online(user_id)

    async def emit_to_user(self, user_id: UUID, event: RealtimeEvent) -> bool:
        connection = self._registry.lookup(user_id)
        if connection is None:
            logger.debug("Dropped %s for offline user %s", event.name, user_id)
            return False
        try:
            await connection.push(event)
        except Exception:
            logger.warning("Failed to push %s to %s", event.name, user_id, exc_info=True)
            return False
        return True

    async def emit_to_all(self, event: RealtimeEvent) -> int:
        """Push ``event`` to every registered user. Return how many received it."""
        delivered = 0
        for user_id in self._registry.list_user_ids():
            if await self.emit_to_user(user_id, event):
                delivered += 1
        return delivered
