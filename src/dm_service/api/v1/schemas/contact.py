from __future__ import annotations

from datetime import datetime
from uuid import UUID

from dm_service.api.v1.schemas.common import CamelModel


class UserResponse(CamelModel):
    id: UUID
    full_name: str
    email: str
    profile_pic: str | None
    created_at: datetime


class ChatPartnerResponse(UserResponse):
    unread_count: int
