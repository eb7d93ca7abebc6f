from __future__ import annotations

from fastapi import APIRouter

from dm_service.api.deps import CurrentPrincipal, UoWDep
from dm_service.api.v1.schemas.contact import ChatPartnerResponse, UserResponse
from dm_service.services import contact_service

router = APIRouter(prefix="/api/v1", tags=["contacts"])


@router.get("/contacts", response_model=list[UserResponse])
async def list_contacts(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[UserResponse]:
    users = await contact_service.list_contacts(principal, uow)
    return [UserResponse.model_validate(u, from_attributes=True) for u in users]


@router.get("/chats", response_model=list[ChatPartnerResponse])
async def list_chat_partners(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[ChatPartnerResponse]:
    partners = await contact_service.list_chat_partners(principal, uow)
    return [
        ChatPartnerResponse(
            id=p.user.id,
            full_name=p.user.full_name,
            email=p.user.email,
            profile_pic=p.user.profile_pic,
            created_at=p.user.created_at,
            unread_count=p.unread_count,
        )
        for p in partners
    ]
