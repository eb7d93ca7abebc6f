from __future__ import annotations

from enum import StrEnum


class EphemeralKind(StrEnum):
    TYPING = "typing"
    VIEWING = "viewing"


class ReactionAction(StrEnum):
    ADDED = "added"
    REMOVED = "removed"
