from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    text: str | None = None
    image: str | None = None  # raw upload payload (data URL / base64)
    reply_to: UUID | None = None
