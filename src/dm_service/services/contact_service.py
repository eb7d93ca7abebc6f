from __future__ import annotations

from dm_service.application.dto.principal import Principal
from dm_service.application.uow import UnitOfWork
from dm_service.domain.entities.user import ChatPartner, UserSummary


async def list_contacts(principal: Principal, uow: UnitOfWork) -> list[UserSummary]:
    return await uow.users.list_others(principal.user_id)


async def list_chat_partners(principal: Principal, uow: UnitOfWork) -> list[ChatPartner]:
    """Users the caller has exchanged messages with, with their unread counts."""
    partner_ids = await uow.messages.list_partner_ids(principal.user_id)
    if not partner_ids:
        return []

    users = await uow.users.get_many(partner_ids)
    unread = {
        summary.sender_id: summary.count
        for summary in await uow.messages.aggregate_unread_by_sender(principal.user_id)
    }
    return [ChatPartner(user=u, unread_count=unread.get(u.id, 0)) for u in users]
