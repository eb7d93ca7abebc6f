from __future__ import annotations

import logging
import uuid

from dm_service.application.dto.principal import Principal
from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.ports.realtime import EventPublisher
from dm_service.application.uow import UnitOfWork
from dm_service.domain.entities.read_state import MarkReadResult, UnreadSummary
from dm_service.domain.events.realtime import MessagesRead

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


async def mark_read(
    principal: Principal,
    sender_id: uuid.UUID,
    uow: UnitOfWork,
    events: EventPublisher,
) -> MarkReadResult:
    """Mark every unread message from ``sender_id`` to the caller as read.

    One ``messagesRead`` event is sent for the whole batch. A repeated call
    flips nothing and sends nothing.
    """
    message_ids = await uow.messages_w.bulk_mark_read(
        principal.user_id, sender_id, _clock.now(),
    )
    await uow.commit()

    result = MarkReadResult(count=len(message_ids), message_ids=tuple(message_ids))
    if result.count:
        logger.info("%s read %d messages from %s", principal.user_id, result.count, sender_id)
        await events.emit_to_user(
            sender_id,
            MessagesRead(reader_id=principal.user_id, message_ids=result.message_ids),
        )
    return result


async def unread_by_sender(
    principal: Principal,
    uow: UnitOfWork,
) -> list[UnreadSummary]:
    return await uow.messages.aggregate_unread_by_sender(principal.user_id)
