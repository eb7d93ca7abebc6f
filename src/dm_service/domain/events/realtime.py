"""Outbound real-time events, one variant per wire event name."""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union
from uuid import UUID

from dm_service.domain.entities.message import Message, Reaction
from dm_service.domain.value_objects.enums import ReactionAction


@dataclass(frozen=True, slots=True)
class NewMessage:
    name: ClassVar[str] = "newMessage"

    message: Message


@dataclass(frozen=True, slots=True)
class MessageEdited:
    name: ClassVar[str] = "messageEdited"

    message_id: UUID
    text: str | None


@dataclass(frozen=True, slots=True)
class MessageDeleted:
    name: ClassVar[str] = "messageDeleted"

    message_id: UUID


@dataclass(frozen=True, slots=True)
class MessageReactionChanged:
    name: ClassVar[str] = "messageReaction"

    message_id: UUID
    reaction: Reaction
    action: ReactionAction


@dataclass(frozen=True, slots=True)
class MessagesRead:
    name: ClassVar[str] = "messagesRead"

    reader_id: UUID
    message_ids: tuple[UUID, ...]


@dataclass(frozen=True, slots=True)
class UserTyping:
    name: ClassVar[str] = "userTyping"

    user_id: UUID


@dataclass(frozen=True, slots=True)
class UserStoppedTyping:
    name: ClassVar[str] = "userStoppedTyping"

    user_id: UUID


@dataclass(frozen=True, slots=True)
class UserViewingChat:
    name: ClassVar[str] = "userViewingChat"

    user_id: UUID


@dataclass(frozen=True, slots=True)
class UserLeftChat:
    name: ClassVar[str] = "userLeftChat"

    user_id: UUID


@dataclass(frozen=True, slots=True)
class OnlineUsers:
    name: ClassVar[str] = "getOnlineUsers"

    user_ids: tuple[UUID, ...]


RealtimeEvent = Union[
    NewMessage,
    MessageEdited,
    MessageDeleted,
    MessageReactionChanged,
    MessagesRead,
    UserTyping,
    UserStoppedTyping,
    UserViewingChat,
    UserLeftChat,
    OnlineUsers,
]
