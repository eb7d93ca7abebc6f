"""Presence snapshots and ephemeral typing / viewing state."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.ports.realtime import Connection
from dm_service.domain.events.realtime import (
    OnlineUsers,
    UserLeftChat,
    UserStoppedTyping,
    UserTyping,
    UserViewingChat,
)
from dm_service.domain.value_objects.enums import EphemeralKind
from dm_service.infrastructure.ws.event_router import EventRouter
from dm_service.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

SUPERSEDED_CLOSE_CODE = 4000


@dataclass(frozen=True, slots=True)
class InteractionEntry:
    subject_id: UUID
    peer_id: UUID
    kind: EphemeralKind
    since: datetime


class PresenceTracker:
    """Derives the online set from the registry and tracks who is typing / viewing.

    Entries are keyed by (subject, peer, kind). A subject views at most one chat
    at a time. There is no server-side expiry: entries go away on an explicit
    stop signal or when the subject's connection closes.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        events: EventRouter,
        clock: Clock | None = None,
    ) -> None:
        self._registry = registry
        self._events = events
        self._clock = clock or SystemClock()
        self._entries: dict[UUID, dict[tuple[UUID, EphemeralKind], InteractionEntry]] = {}
        # one broadcast at a time: a client never ends on a stale snapshot
        self._broadcast_lock = asyncio.Lock()

    # -- connection lifecycle -------------------------------------------------

    async def connect(self, user_id: UUID, connection: Connection) -> None:
        previous = self._registry.register(user_id, connection)
        if previous is not None:
            try:
                await previous.close(code=SUPERSEDED_CLOSE_CODE, reason="Superseded by a newer connection")
            except Exception:
                logger.debug("Closing superseded connection for %s failed", user_id, exc_info=True)
        await self.broadcast_online()

    async def disconnect(self, user_id: UUID, connection: Connection) -> bool:
        """Tear down ``connection``. Return False if a newer connection already replaced it."""
        if not self._registry.unregister(user_id, connection):
            return False
        entries = list(self._entries.pop(user_id, {}).values())
        await self.broadcast_online()
        for entry in entries:
            if entry.kind is EphemeralKind.VIEWING:
                await self._events.emit_to_user(entry.peer_id, UserLeftChat(user_id=user_id))
            else:
                await self._events.emit_to_user(entry.peer_id, UserStoppedTyping(user_id=user_id))
        return True

    def online_user_ids(self) -> list[UUID]:
        return self._registry.list_user_ids()

    async def broadcast_online(self) -> None:
        """Send the full online snapshot to every connected user."""
        async with self._broadcast_lock:
            snapshot = OnlineUsers(user_ids=tuple(self._registry.list_user_ids()))
            await self._events.emit_to_all(snapshot)

    # -- typing ---------------------------------------------------------------

    async def start_typing(self, subject_id: UUID, peer_id: UUID) -> None:
        self._put(subject_id, peer_id, EphemeralKind.TYPING)
        await self._events.emit_to_user(peer_id, UserTyping(user_id=subject_id))

    async def stop_typing(self, subject_id: UUID, peer_id: UUID) -> None:
        if self._pop(subject_id, peer_id, EphemeralKind.TYPING) is None:
            return
        await self._events.emit_to_user(peer_id, UserStoppedTyping(user_id=subject_id))

    # -- viewing --------------------------------------------------------------

    async def start_viewing(self, subject_id: UUID, peer_id: UUID) -> None:
        previous = self.viewing(subject_id)
        if previous is not None and previous.peer_id != peer_id:
            self._pop(subject_id, previous.peer_id, EphemeralKind.VIEWING)
            await self._events.emit_to_user(previous.peer_id, UserLeftChat(user_id=subject_id))
        self._put(subject_id, peer_id, EphemeralKind.VIEWING)
        await self._events.emit_to_user(peer_id, UserViewingChat(user_id=subject_id))

    async def stop_viewing(self, subject_id: UUID, peer_id: UUID) -> None:
        self._pop(subject_id, peer_id, EphemeralKind.VIEWING)
        await self._events.emit_to_user(peer_id, UserLeftChat(user_id=subject_id))

    def viewing(self, subject_id: UUID) -> InteractionEntry | None:
        for entry in self._entries.get(subject_id, {}).values():
            if entry.kind is EphemeralKind.VIEWING:
                return entry
        return None

    def interactions_of(self, subject_id: UUID) -> list[InteractionEntry]:
        return list(self._entries.get(subject_id, {}).values())

    # -- internals ------------------------------------------------------------

    def _put(self, subject_id: UUID, peer_id: UUID, kind: EphemeralKind) -> InteractionEntry:
        bucket = self._entries.setdefault(subject_id, {})
        entry = bucket.get((peer_id, kind))
        if entry is None:
            entry = InteractionEntry(subject_id, peer_id, kind, self._clock.now())
            bucket[(peer_id, kind)] = entry
        return entry

    def _pop(self, subject_id: UUID, peer_id: UUID, kind: EphemeralKind) -> InteractionEntry | None:
        bucket = self._entries.get(subject_id)
        if not bucket:
            return None
        entry = bucket.pop((peer_id, kind), None)
        if not bucket:
            del self._entries[subject_id]
        return entry
