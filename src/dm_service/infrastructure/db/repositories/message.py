from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dm_service.application.pagination import decode_cursor
from dm_service.domain.entities.message import Message
from dm_service.domain.entities.read_state import UnreadSummary
from dm_service.infrastructure.db.mappers import message as mapper
from dm_service.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        model = await self._session.get(MessageModel, message_id)
        return mapper.model_to_entity(model) if model else None

    async def list_conversation(
        self,
        user_a: UUID,
        user_b: UUID,
        *,
        cursor: str | None = None,
        limit: int = 100,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(
                or_(
                    and_(MessageModel.sender_id == user_a, MessageModel.receiver_id == user_b),
                    and_(MessageModel.sender_id == user_b, MessageModel.receiver_id == user_a),
                )
            )
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
            .limit(limit)
        )
        if cursor:
            ts, mid = decode_cursor(cursor)
            stmt = stmt.where(
                (MessageModel.created_at > ts)
                | ((MessageModel.created_at == ts) & (MessageModel.id > mid))
            )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def aggregate_unread_by_sender(self, receiver_id: UUID) -> list[UnreadSummary]:
        ranked = (
            select(
                MessageModel.sender_id,
                MessageModel.text,
                MessageModel.created_at,
                func.count().over(partition_by=MessageModel.sender_id).label("unread"),
                func.row_number()
                .over(
                    partition_by=MessageModel.sender_id,
                    order_by=(MessageModel.created_at.desc(), MessageModel.id.desc()),
                )
                .label("rn"),
            )
            .where(
                MessageModel.receiver_id == receiver_id,
                MessageModel.is_read.is_(False),
            )
            .subquery()
        )
        stmt = select(
            ranked.c.sender_id,
            ranked.c.unread,
            ranked.c.text,
            ranked.c.created_at,
        ).where(ranked.c.rn == 1)
        result = await self._session.execute(stmt)
        return [
            UnreadSummary(
                sender_id=row.sender_id,
                count=row.unread,
                last_message=row.text,
                last_message_time=row.created_at,
            )
            for row in result.all()
        ]

    async def list_partner_ids(self, user_id: UUID) -> list[UUID]:
        pairs = (
            select(
                case(
                    (MessageModel.sender_id == user_id, MessageModel.receiver_id),
                    else_=MessageModel.sender_id,
                ).label("partner_id"),
                MessageModel.created_at,
            )
            .where(or_(MessageModel.sender_id == user_id, MessageModel.receiver_id == user_id))
            .subquery()
        )
        stmt = (
            select(pairs.c.partner_id)
            .group_by(pairs.c.partner_id)
            .order_by(func.max(pairs.c.created_at).desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(self, message: Message) -> Message:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def get_for_update(self, message_id: UUID) -> Message | None:
        stmt = select(MessageModel).where(MessageModel.id == message_id).with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def update_fields(self, message_id: UUID, **patch: Any) -> Message | None:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(**mapper.patch_to_values(patch))
            .returning(MessageModel)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def delete_by_id(self, message_id: UUID) -> bool:
        stmt = (
            delete(MessageModel)
            .where(MessageModel.id == message_id)
            .returning(MessageModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def bulk_mark_read(
        self,
        receiver_id: UUID,
        sender_id: UUID,
        read_at: datetime,
    ) -> list[UUID]:
        # Single statement: rows inserted after it starts are not part of the batch.
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.receiver_id == receiver_id,
                MessageModel.sender_id == sender_id,
                MessageModel.is_read.is_(False),
            )
            .values(is_read=True, read_at=read_at)
            .returning(MessageModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
