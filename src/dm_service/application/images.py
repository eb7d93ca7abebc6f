"""Inbound image payloads: ``data:<type>;base64,<data>`` or bare base64."""
from __future__ import annotations

import base64
import binascii

from dm_service.application.exceptions import ValidationError

ALLOWED_CONTENT_TYPES = frozenset({"image/png", "image/jpeg", "image/gif", "image/webp"})
MAX_IMAGE_BYTES = 5 * 1024 * 1024


def decode_image_payload(image: str) -> tuple[bytes, str]:
    """Split an image payload into (bytes, content type).

    A bare base64 string is accepted and treated as JPEG.
    """
    content_type = "image/jpeg"
    data = image
    if image.startswith("data:"):
        header, sep, data = image.partition(",")
        if not sep or not header.endswith(";base64"):
            raise ValidationError("Image must be a base64 data URL")
        content_type = header[len("data:"):-len(";base64")]

    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(f"Unsupported image type: {content_type}")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Image payload is not valid base64") from exc
    if not raw:
        raise ValidationError("Image payload is empty")
    if len(raw) > MAX_IMAGE_BYTES:
        raise ValidationError("Image is too large")
    return raw, content_type
