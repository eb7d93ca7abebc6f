from __future__ import annotations

from typing import Any
from uuid import UUID

from dm_service.domain.entities.message import Message, Reaction
from dm_service.infrastructure.db.models.message import MessageModel


def reactions_to_json(reactions: tuple[Reaction, ...]) -> list[dict[str, Any]]:
    return [{"user_id": str(r.user_id), "emoji": r.emoji} for r in reactions]


def reactions_from_json(raw: list[dict[str, Any]] | None) -> tuple[Reaction, ...]:
    return tuple(Reaction(user_id=UUID(r["user_id"]), emoji=r["emoji"]) for r in raw or [])


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        receiver_id=model.receiver_id,
        text=model.text,
        image=model.image,
        reply_to=model.reply_to,
        is_edited=model.is_edited,
        is_delivered=model.is_delivered,
        is_read=model.is_read,
        read_at=model.read_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
        reactions=reactions_from_json(model.reactions),
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        sender_id=entity.sender_id,
        receiver_id=entity.receiver_id,
        text=entity.text,
        image=entity.image,
        reply_to=entity.reply_to,
        is_edited=entity.is_edited,
        is_delivered=entity.is_delivered,
        is_read=entity.is_read,
        read_at=entity.read_at,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
        reactions=reactions_to_json(entity.reactions),
    )


def patch_to_values(patch: dict[str, Any]) -> dict[str, Any]:
    values = dict(patch)
    if "reactions" in values:
        values["reactions"] = reactions_to_json(values["reactions"])
    return values
