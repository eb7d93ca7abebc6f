from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from dm_service.api.v1.schemas.common import CamelModel


class SendMessageRequest(CamelModel):
    text: str | None = None
    image: str | None = None
    reply_to: UUID | None = None


class EditMessageRequest(CamelModel):
    text: str


class ReactRequest(CamelModel):
    emoji: str


class ForwardRequest(CamelModel):
    receiver_ids: list[UUID] = Field(min_length=1)


class ReactionResponse(CamelModel):
    user_id: UUID
    emoji: str


class MessageResponse(CamelModel):
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    text: str | None
    image: str | None
    reply_to: UUID | None
    is_edited: bool
    is_delivered: bool
    is_read: bool
    read_at: datetime | None
    reactions: list[ReactionResponse]
    created_at: datetime
    updated_at: datetime


class DeleteMessageResponse(CamelModel):
    message: str = "Message deleted successfully"


class MarkReadResponse(CamelModel):
    count: int
    message_ids: list[UUID]


class UnreadSummaryResponse(CamelModel):
    count: int
    last_message: str | None
    last_message_time: datetime
