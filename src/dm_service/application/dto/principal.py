from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    user_id: UUID
    roles: list[str] = field(default_factory=list)

    @property
    def principal_key(self) -> str:
        """Stable key used in log lines."""
        return f"user:{self.user_id}"
