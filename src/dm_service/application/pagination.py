"""Keyset cursors over the (created_at, id) message order.

A cursor is the urlsafe base64 of "<iso-timestamp>|<message-uuid>" with the
padding stripped. It names the last message of a page; the next page starts
strictly after it.
"""
from __future__ import annotations

import base64
import binascii
from datetime import datetime
from uuid import UUID

from dm_service.application.exceptions import ValidationError
from dm_service.domain.entities.message import Message


def encode_cursor(message: Message) -> str:
    raw = f"{message.created_at.isoformat()}|{message.id}"
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode()).decode()
        ts_str, uid_str = raw.split("|", 1)
        return datetime.fromisoformat(ts_str), UUID(uid_str)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise ValidationError("Malformed cursor") from None


def next_cursor(page: list[Message], limit: int) -> str | None:
    """Cursor for the page after ``page``, or None when this page was the last."""
    if len(page) < limit or not page:
        return None
    return encode_cursor(page[-1])
