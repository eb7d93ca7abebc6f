"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import pytest

from dm_service.application.dto.principal import Principal
from dm_service.application.pagination import decode_cursor
from dm_service.domain.entities.message import Message
from dm_service.domain.entities.read_state import UnreadSummary
from dm_service.domain.entities.user import UserSummary
from dm_service.domain.events.realtime import RealtimeEvent
from dm_service.infrastructure.ws.event_router import EventRouter
from dm_service.infrastructure.ws.presence import PresenceTracker
from dm_service.infrastructure.ws.registry import ConnectionRegistry

ALICE_ID = UUID("00000000-0000-4000-8000-00000000000a")
BOB_ID = UUID("00000000-0000-4000-8000-00000000000b")
CAROL_ID = UUID("00000000-0000-4000-8000-00000000000c")


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id=ALICE_ID)


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id=BOB_ID)


@pytest.fixture
def carol() -> Principal:
    return Principal(user_id=CAROL_ID)


def make_user(user_id: UUID, name: str = "User") -> UserSummary:
    return UserSummary(
        id=user_id,
        full_name=name,
        email=f"{name.lower()}@example.com",
        profile_pic=None,
        created_at=datetime.now(timezone.utc),
    )


def make_message(
    *,
    sender_id: UUID = ALICE_ID,
    receiver_id: UUID = BOB_ID,
    text: str | None = "hello",
    image: str | None = None,
    is_read: bool = False,
    created_at: datetime | None = None,
) -> Message:
    now = created_at or datetime.now(timezone.utc)
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        text=text,
        image=image,
        reply_to=None,
        is_edited=False,
        is_delivered=False,
        is_read=is_read,
        read_at=now if is_read else None,
        created_at=now,
        updated_at=now,
    )


@dataclass
class FakeMessageReader:
    _messages: dict[UUID, Message] = field(default_factory=dict)

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return self._messages.get(message_id)

    async def list_conversation(
        self, user_a: UUID, user_b: UUID, *, cursor: str | None = None, limit: int = 100,
    ) -> list[Message]:
        found = [m for m in self._messages.values() if m.is_between(user_a, user_b)]
        found.sort(key=lambda m: (m.created_at, m.id))
        if cursor:
            after = decode_cursor(cursor)
            found = [m for m in found if (m.created_at, m.id) > after]
        return found[:limit]

    async def aggregate_unread_by_sender(self, receiver_id: UUID) -> list[UnreadSummary]:
        by_sender: dict[UUID, list[Message]] = {}
        for m in self._messages.values():
            if m.receiver_id == receiver_id and not m.is_read:
                by_sender.setdefault(m.sender_id, []).append(m)
        summaries = []
        for sender_id, msgs in by_sender.items():
            last = max(msgs, key=lambda m: (m.created_at, m.id))
            summaries.append(
                UnreadSummary(
                    sender_id=sender_id,
                    count=len(msgs),
                    last_message=last.text,
                    last_message_time=last.created_at,
                )
            )
        return summaries

    async def list_partner_ids(self, user_id: UUID) -> list[UUID]:
        partners: list[UUID] = []
        for m in self._messages.values():
            if m.involves(user_id):
                other = m.other_participant(user_id)
                if other not in partners:
                    partners.append(other)
        return partners


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def insert(self, message: Message) -> Message:
        self._reader._messages[message.id] = message
        return message

    async def get_for_update(self, message_id: UUID) -> Message | None:
        return self._reader._messages.get(message_id)

    async def update_fields(self, message_id: UUID, **patch: Any) -> Message | None:
        current = self._reader._messages.get(message_id)
        if current is None:
            return None
        updated = replace(current, **patch)
        self._reader._messages[message_id] = updated
        return updated

    async def delete_by_id(self, message_id: UUID) -> bool:
        return self._reader._messages.pop(message_id, None) is not None

    async def bulk_mark_read(self, receiver_id: UUID, sender_id: UUID, read_at: datetime) -> list[UUID]:
        flipped = []
        for m in list(self._reader._messages.values()):
            if m.receiver_id == receiver_id and m.sender_id == sender_id and not m.is_read:
                self._reader._messages[m.id] = replace(m, is_read=True, read_at=read_at)
                flipped.append(m.id)
        return flipped


@dataclass
class FakeUserDirectory:
    _users: dict[UUID, UserSummary] = field(default_factory=dict)

    async def exists(self, user_id: UUID) -> bool:
        return user_id in self._users

    async def list_others(self, excluding: UUID) -> list[UserSummary]:
        return [u for u in self._users.values() if u.id != excluding]

    async def get_many(self, user_ids: list[UUID]) -> list[UserSummary]:
        return [self._users[uid] for uid in user_ids if uid in self._users]


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    users: FakeUserDirectory = field(default_factory=FakeUserDirectory)
    _committed: bool = False

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    def add_users(self, *users: UserSummary) -> None:
        for user in users:
            self.users._users[user.id] = user

    def add_message(self, message: Message) -> Message:
        self.messages._messages[message.id] = message
        return message

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        pass

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, *exc: object) -> None:
        pass


@dataclass(eq=False)
class FakeConnection:
    """Records every event pushed to it."""
    events: list[RealtimeEvent] = field(default_factory=list)
    closed_with: int | None = None
    fail: bool = False
    delay: float = 0.0

    async def push(self, event: RealtimeEvent) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionResetError("socket gone")
        self.events.append(event)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = code

    def names(self) -> list[str]:
        return [e.name for e in self.events]

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]


@dataclass
class FakeImageStore:
    uploads: list[tuple[bytes, str]] = field(default_factory=list)

    async def upload(self, data: bytes, content_type: str) -> str:
        self.uploads.append((data, content_type))
        return f"https://cdn.example.com/messages/{len(self.uploads)}.png"


@pytest.fixture
def uow() -> FakeUoW:
    fake = FakeUoW()
    fake.add_users(make_user(ALICE_ID, "Alice"), make_user(BOB_ID, "Bob"), make_user(CAROL_ID, "Carol"))
    return fake


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def events(registry: ConnectionRegistry) -> EventRouter:
    return EventRouter(registry)


@pytest.fixture
def presence(registry: ConnectionRegistry, events: EventRouter) -> PresenceTracker:
    return PresenceTracker(registry, events)


@pytest.fixture
def images() -> FakeImageStore:
    return FakeImageStore()
