from __future__ import annotations

from typing import Any
from uuid import UUID

from dm_service.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a Principal from verified JWT claims. ``sub`` must be a user UUID."""
    subject = payload.get("sub") or payload.get("userId")
    if not subject:
        raise ValueError("Token has no subject")
    return Principal(
        user_id=UUID(str(subject)),
        roles=list(payload.get("roles", [])),
    )
