from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response

from dm_service.api.deps import CurrentPrincipal, EventsDep, ImagesDep, UoWDep
from dm_service.api.v1.schemas.message import (
    DeleteMessageResponse,
    EditMessageRequest,
    ForwardRequest,
    MarkReadResponse,
    MessageResponse,
    ReactRequest,
    SendMessageRequest,
    UnreadSummaryResponse,
)
from dm_service.application.dto.message import SendMessageDTO
from dm_service.application.pagination import next_cursor
from dm_service.services import message_service, read_state_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])

NEXT_CURSOR_HEADER = "X-Next-Cursor"


@router.get("/unread", response_model=dict[str, UnreadSummaryResponse])
async def unread_counts(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> dict[str, UnreadSummaryResponse]:
    summaries = await read_state_service.unread_by_sender(principal, uow)
    return {
        str(s.sender_id): UnreadSummaryResponse.model_validate(s, from_attributes=True)
        for s in summaries
    }


@router.get("/{user_id}", response_model=list[MessageResponse])
async def list_messages(
    user_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    response: Response,
    cursor: str | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
) -> list[MessageResponse]:
    messages = await message_service.list_conversation(principal, user_id, cursor, limit, uow)
    following = next_cursor(messages, limit)
    if following is not None:
        response.headers[NEXT_CURSOR_HEADER] = following
    return [MessageResponse.model_validate(m, from_attributes=True) for m in messages]


@router.post("/send/{receiver_id}", response_model=MessageResponse, status_code=201)
async def send_message(
    receiver_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    events: EventsDep,
    images: ImagesDep,
) -> MessageResponse:
    msg = await message_service.send_message(
        principal,
        receiver_id,
        SendMessageDTO(text=body.text, image=body.image, reply_to=body.reply_to),
        uow,
        events,
        images,
    )
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/read/{sender_id}", response_model=MarkReadResponse)
async def mark_read(
    sender_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    events: EventsDep,
) -> MarkReadResponse:
    result = await read_state_service.mark_read(principal, sender_id, uow, events)
    return MarkReadResponse(count=result.count, message_ids=list(result.message_ids))


@router.patch("/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: UUID,
    body: EditMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    events: EventsDep,
) -> MessageResponse:
    msg = await message_service.edit_message(principal, message_id, body.text, uow, events)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.delete("/{message_id}", response_model=DeleteMessageResponse)
async def delete_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    events: EventsDep,
) -> DeleteMessageResponse:
    await message_service.delete_message(principal, message_id, uow, events)
    return DeleteMessageResponse()


@router.post("/{message_id}/react", response_model=MessageResponse)
async def react_to_message(
    message_id: UUID,
    body: ReactRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    events: EventsDep,
) -> MessageResponse:
    msg = await message_service.react_to_message(principal, message_id, body.emoji, uow, events)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/{message_id}/forward", response_model=list[MessageResponse], status_code=201)
async def forward_message(
    message_id: UUID,
    body: ForwardRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    events: EventsDep,
) -> list[MessageResponse]:
    created = await message_service.forward_message(
        principal, message_id, body.receiver_ids, uow, events,
    )
    return [MessageResponse.model_validate(m, from_attributes=True) for m in created]
