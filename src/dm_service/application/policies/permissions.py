from __future__ import annotations

from dm_service.application.dto.principal import Principal
from dm_service.application.exceptions import ForbiddenError, NotFoundError
from dm_service.domain.entities.message import Message


def assert_message_sender(principal: Principal, message: Message | None) -> Message:
    """Raise unless the message exists and was sent by the principal."""
    if message is None:
        raise NotFoundError("Message not found")
    if message.sender_id != principal.user_id:
        raise ForbiddenError("You can only change your own messages")
    return message


def assert_message_participant(principal: Principal, message: Message | None) -> Message:
    """Raise unless the message exists and the principal is sender or receiver."""
    if message is None:
        raise NotFoundError("Message not found")
    if not message.involves(principal.user_id):
        raise ForbiddenError("Not a participant of this conversation")
    return message
