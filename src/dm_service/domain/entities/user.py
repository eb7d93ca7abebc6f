from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class UserSummary:
    id: UUID
    full_name: str
    email: str
    profile_pic: str | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class ChatPartner:
    user: UserSummary
    unread_count: int
