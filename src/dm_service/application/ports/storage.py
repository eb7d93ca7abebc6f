from __future__ import annotations

from typing import Protocol


class ImageStore(Protocol):
    async def upload(self, data: bytes, content_type: str) -> str:
        """Store already-validated image bytes and return their public URL."""
        ...
