from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from dm_service.domain.entities.message import Message
from dm_service.domain.entities.read_state import UnreadSummary


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_conversation(
        self,
        user_a: UUID,
        user_b: UUID,
        *,
        cursor: str | None = None,
        limit: int = 100,
    ) -> list[Message]:
        """Messages exchanged between two users, oldest first."""
        ...

    async def aggregate_unread_by_sender(self, receiver_id: UUID) -> list[UnreadSummary]: ...

    async def list_partner_ids(self, user_id: UUID) -> list[UUID]:
        """Ids of every user that exchanged at least one message with ``user_id``."""
        ...


class MessageWriter(Protocol):
    async def insert(self, message: Message) -> Message: ...

    async def get_for_update(self, message_id: UUID) -> Message | None:
        """Load a message and lock it until the end of the unit of work."""
        ...

    async def update_fields(self, message_id: UUID, **patch: Any) -> Message | None:
        """Apply ``patch`` and return the updated message, or None if it is gone."""
        ...

    async def delete_by_id(self, message_id: UUID) -> bool: ...

    async def bulk_mark_read(
        self,
        receiver_id: UUID,
        sender_id: UUID,
        read_at: datetime,
    ) -> list[UUID]:
        """Flip every unread message from sender to receiver. Return the flipped ids."""
        ...
