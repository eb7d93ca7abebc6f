from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dm_service.domain.entities.user import UserSummary
from dm_service.infrastructure.db.mappers import user as mapper
from dm_service.infrastructure.db.models.user import UserModel


class UserDirectoryRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(self, user_id: UUID) -> bool:
        stmt = select(UserModel.id).where(UserModel.id == user_id).limit(1)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_others(self, excluding: UUID) -> list[UserSummary]:
        stmt = (
            select(UserModel)
            .where(UserModel.id != excluding)
            .order_by(UserModel.full_name.asc(), UserModel.id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def get_many(self, user_ids: list[UUID]) -> list[UserSummary]:
        if not user_ids:
            return []
        stmt = select(UserModel).where(UserModel.id.in_(user_ids))
        result = await self._session.execute(stmt)
        by_id = {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}
        return [by_id[uid] for uid in user_ids if uid in by_id]
