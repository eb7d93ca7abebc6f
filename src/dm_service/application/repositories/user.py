from __future__ import annotations

from typing import Protocol
from uuid import UUID

from dm_service.domain.entities.user import UserSummary


class UserDirectory(Protocol):
    async def exists(self, user_id: UUID) -> bool: ...

    async def list_others(self, excluding: UUID) -> list[UserSummary]: ...

    async def get_many(self, user_ids: list[UUID]) -> list[UserSummary]: ...
