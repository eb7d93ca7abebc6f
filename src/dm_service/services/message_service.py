from __future__ import annotations

import logging
import uuid

from dm_service.application.dto.message import SendMessageDTO
from dm_service.application.dto.principal import Principal
from dm_service.application.exceptions import (
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from dm_service.application.images import decode_image_payload
from dm_service.application.policies.permissions import (
    assert_message_participant,
    assert_message_sender,
)
from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.ports.realtime import EventPublisher
from dm_service.application.ports.storage import ImageStore
from dm_service.application.uow import UnitOfWork
from dm_service.domain.entities.message import MAX_TEXT_LENGTH, Message, Reaction
from dm_service.domain.events.realtime import (
    MessageDeleted,
    MessageEdited,
    MessageReactionChanged,
    NewMessage,
)

logger = logging.getLogger(__name__)

MAX_EMOJI_LENGTH = 32

_clock: Clock = SystemClock()


def _normalize_text(text: str | None) -> str | None:
    """Trim text; blank counts as absent."""
    if text is None:
        return None
    text = text.strip()
    if not text:
        return None
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(f"Text must be at most {MAX_TEXT_LENGTH} characters")
    return text


async def _assert_receiver(sender_id: uuid.UUID, receiver_id: uuid.UUID, uow: UnitOfWork) -> None:
    if sender_id == receiver_id:
        raise ValidationError("Cannot send messages to yourself")
    if not await uow.users.exists(receiver_id):
        raise NotFoundError("Receiver not found")


def _new_message(
    sender_id: uuid.UUID,
    receiver_id: uuid.UUID,
    text: str | None,
    image_url: str | None,
    reply_to: uuid.UUID | None,
    events: EventPublisher,
) -> Message:
    now = _clock.now()
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        text=text,
        image=image_url,
        reply_to=reply_to,
        is_edited=False,
        # Snapshot of reachability at persistence time; never recomputed.
        is_delivered=events.is_online(receiver_id),
        is_read=False,
        read_at=None,
        created_at=now,
        updated_at=now,
    )


async def send_message(
    principal: Principal,
    receiver_id: uuid.UUID,
    content: SendMessageDTO,
    uow: UnitOfWork,
    events: EventPublisher,
    images: ImageStore | None,
) -> Message:
    """Persist a message and push it to the receiver if they are online."""
    text = _normalize_text(content.text)
    if text is None and not content.image:
        raise ValidationError("Text or image is required")
    await _assert_receiver(principal.user_id, receiver_id, uow)

    if content.reply_to is not None:
        parent = await uow.messages.get_by_id(content.reply_to)
        if parent is None or not parent.is_between(principal.user_id, receiver_id):
            raise ValidationError("replyTo must reference a message of this conversation")

    image_url: str | None = None
    if content.image:
        # bad input is reported before storage availability
        data, content_type = decode_image_payload(content.image)
        if images is None:
            raise UpstreamError("Image storage is not configured")
        image_url = await images.upload(data, content_type)

    msg = _new_message(principal.user_id, receiver_id, text, image_url, content.reply_to, events)
    msg = await uow.messages_w.insert(msg)
    await uow.commit()
    logger.info(
        "Message %s sent %s -> %s (delivered=%s)",
        msg.id, msg.sender_id, msg.receiver_id, msg.is_delivered,
    )

    await events.emit_to_user(receiver_id, NewMessage(message=msg))
    return msg


async def edit_message(
    principal: Principal,
    message_id: uuid.UUID,
    text: str | None,
    uow: UnitOfWork,
    events: EventPublisher,
) -> Message:
    msg = await uow.messages.get_by_id(message_id)
    msg = assert_message_sender(principal, msg)

    new_text = _normalize_text(text)
    if new_text is None and msg.image is None:
        raise ValidationError("Text is required")

    updated = await uow.messages_w.update_fields(
        message_id, text=new_text, is_edited=True, updated_at=_clock.now(),
    )
    if updated is None:
        raise NotFoundError("Message not found")
    await uow.commit()
    logger.info("Message %s edited by %s", message_id, principal.user_id)

    await events.emit_to_user(
        updated.receiver_id, MessageEdited(message_id=updated.id, text=updated.text),
    )
    return updated


async def delete_message(
    principal: Principal,
    message_id: uuid.UUID,
    uow: UnitOfWork,
    events: EventPublisher,
) -> None:
    """Hard-delete a message. A second delete of the same id is NotFound."""
    msg = await uow.messages.get_by_id(message_id)
    msg = assert_message_sender(principal, msg)

    if not await uow.messages_w.delete_by_id(message_id):
        raise NotFoundError("Message not found")
    await uow.commit()
    logger.info("Message %s deleted by %s", message_id, principal.user_id)

    await events.emit_to_user(msg.receiver_id, MessageDeleted(message_id=message_id))


async def react_to_message(
    principal: Principal,
    message_id: uuid.UUID,
    emoji: str,
    uow: UnitOfWork,
    events: EventPublisher,
) -> Message:
    """Toggle the caller's ``emoji`` reaction and notify the other participant."""
    emoji = emoji.strip()
    if not emoji or len(emoji) > MAX_EMOJI_LENGTH:
        raise ValidationError("A single emoji is required")

    msg = await uow.messages_w.get_for_update(message_id)
    msg = assert_message_participant(principal, msg)

    reaction = Reaction(user_id=principal.user_id, emoji=emoji)
    toggled, action = msg.toggle_reaction(reaction)
    updated = await uow.messages_w.update_fields(message_id, reactions=toggled.reactions)
    if updated is None:
        raise NotFoundError("Message not found")
    await uow.commit()

    await events.emit_to_user(
        updated.other_participant(principal.user_id),
        MessageReactionChanged(message_id=updated.id, reaction=reaction, action=action),
    )
    return updated


async def forward_message(
    principal: Principal,
    message_id: uuid.UUID,
    receiver_ids: list[uuid.UUID],
    uow: UnitOfWork,
    events: EventPublisher,
) -> list[Message]:
    """Copy a message's content into a new message for each target.

    Every target is validated before anything is written. Copies are
    independent of the original: later edits do not propagate.
    """
    original = await uow.messages.get_by_id(message_id)
    original = assert_message_participant(principal, original)

    targets = list(dict.fromkeys(receiver_ids))
    if not targets:
        raise ValidationError("At least one receiver is required")
    for receiver_id in targets:
        await _assert_receiver(principal.user_id, receiver_id, uow)

    created: list[Message] = []
    for receiver_id in targets:
        msg = _new_message(principal.user_id, receiver_id, original.text, original.image, None, events)
        created.append(await uow.messages_w.insert(msg))
    await uow.commit()
    logger.info("Message %s forwarded by %s to %d users", message_id, principal.user_id, len(created))

    for msg in created:
        await events.emit_to_user(msg.receiver_id, NewMessage(message=msg))
    return created


async def list_conversation(
    principal: Principal,
    peer_id: uuid.UUID,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    return await uow.messages.list_conversation(
        principal.user_id, peer_id, cursor=cursor, limit=limit,
    )
