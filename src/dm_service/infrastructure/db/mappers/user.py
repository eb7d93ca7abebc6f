from __future__ import annotations

from dm_service.domain.entities.user import UserSummary
from dm_service.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> UserSummary:
    return UserSummary(
        id=model.id,
        full_name=model.full_name,
        email=model.email,
        profile_pic=model.profile_pic,
        created_at=model.created_at,
    )
