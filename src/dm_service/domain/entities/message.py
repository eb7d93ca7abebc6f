from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from uuid import UUID

from dm_service.domain.value_objects.enums import ReactionAction

MAX_TEXT_LENGTH = 2000


@dataclass(frozen=True, slots=True)
class Reaction:
    user_id: UUID
    emoji: str


@dataclass(frozen=True, slots=True)
class Message:
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
    created_at: datetime
    updated_at: datetime
    reactions: tuple[Reaction, ...] = field(default_factory=tuple)

    def involves(self, user_id: UUID) -> bool:
        return user_id in (self.sender_id, self.receiver_id)

    def is_between(self, user_a: UUID, user_b: UUID) -> bool:
        return {self.sender_id, self.receiver_id} == {user_a, user_b}

    def other_participant(self, user_id: UUID) -> UUID:
        """Return the participant on the other side of ``user_id``."""
        return self.receiver_id if user_id == self.sender_id else self.sender_id

    def toggle_reaction(self, reaction: Reaction) -> tuple[Message, ReactionAction]:
        """Add the exact (user, emoji) pair if absent, remove it otherwise."""
        if reaction in self.reactions:
            remaining = tuple(r for r in self.reactions if r != reaction)
            return replace(self, reactions=remaining), ReactionAction.REMOVED
        return replace(self, reactions=(*self.reactions, reaction)), ReactionAction.ADDED
