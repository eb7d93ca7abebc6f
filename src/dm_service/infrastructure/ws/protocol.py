"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any, Callable
from uuid import UUID

from pydantic import BaseModel

from dm_service.api.v1.schemas.common import CamelModel
from dm_service.api.v1.schemas.message import MessageResponse
from dm_service.domain.events.realtime import (
    MessageDeleted,
    MessageEdited,
    MessageReactionChanged,
    MessagesRead,
    NewMessage,
    OnlineUsers,
    RealtimeEvent,
    UserLeftChat,
    UserStoppedTyping,
    UserTyping,
    UserViewingChat,
)


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # typing | stopTyping | viewingChat | leftChat | markAsRead | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # one of the RealtimeEvent names | error | pong
    data: dict[str, Any] | list[Any] = {}


class TypingData(CamelModel):
    receiver_id: UUID


class ViewingData(CamelModel):
    chat_partner_id: UUID


class MarkAsReadData(CamelModel):
    sender_id: UUID


def _user_data(event: UserTyping | UserStoppedTyping | UserViewingChat | UserLeftChat) -> dict[str, Any]:
    return {"userId": str(event.user_id)}


def _new_message(event: NewMessage) -> dict[str, Any]:
    return MessageResponse.model_validate(event.message).model_dump(mode="json", by_alias=True)


def _message_edited(event: MessageEdited) -> dict[str, Any]:
    return {"messageId": str(event.message_id), "text": event.text}


def _message_deleted(event: MessageDeleted) -> dict[str, Any]:
    return {"messageId": str(event.message_id)}


def _message_reaction(event: MessageReactionChanged) -> dict[str, Any]:
    return {
        "messageId": str(event.message_id),
        "reaction": {"userId": str(event.reaction.user_id), "emoji": event.reaction.emoji},
        "action": event.action.value,
    }


def _messages_read(event: MessagesRead) -> dict[str, Any]:
    return {
        "readerId": str(event.reader_id),
        "messageIds": [str(mid) for mid in event.message_ids],
    }


def _online_users(event: OnlineUsers) -> list[str]:
    return [str(uid) for uid in event.user_ids]


_ENCODERS: dict[type, Callable[[Any], dict[str, Any] | list[Any]]] = {
    NewMessage: _new_message,
    MessageEdited: _message_edited,
    MessageDeleted: _message_deleted,
    MessageReactionChanged: _message_reaction,
    MessagesRead: _messages_read,
    UserTyping: _user_data,
    UserStoppedTyping: _user_data,
    UserViewingChat: _user_data,
    UserLeftChat: _user_data,
    OnlineUsers: _online_users,
}


def encode_event(event: RealtimeEvent) -> WsOutbound:
    """Map a domain event onto its wire envelope."""
    try:
        encoder = _ENCODERS[type(event)]
    except KeyError:
        raise TypeError(f"No wire encoding for {type(event).__name__}") from None
    return WsOutbound(type=event.name, data=encoder(event))


def error_envelope(code: str, **extra: Any) -> WsOutbound:
    return WsOutbound(type="error", data={"code": code, **extra})
