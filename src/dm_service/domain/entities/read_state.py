from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class UnreadSummary:
    """Unread messages from one sender to a given receiver."""

    sender_id: UUID
    count: int
    last_message: str | None
    last_message_time: datetime


@dataclass(frozen=True, slots=True)
class MarkReadResult:
    count: int
    message_ids: tuple[UUID, ...]
