"""Image uploads to S3-compatible storage."""
from __future__ import annotations

import asyncio
import logging
import mimetypes
import uuid
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from dm_service.application.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class S3ImageStore:
    """Implements application.ports.storage.ImageStore."""

    def __init__(
        self,
        *,
        bucket: str,
        public_url: str,
        access_key: str,
        secret_key: str,
        endpoint: str | None = None,
        region: str = "us-east-1",
    ) -> None:
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
        self._bucket = bucket
        self._public_url = public_url.rstrip("/")

    @staticmethod
    def _storage_key(content_type: str) -> str:
        """Format: messages/{yyyy}/{mm}/{uuid}{ext}"""
        date_path = datetime.now(timezone.utc).strftime("%Y/%m")
        ext = mimetypes.guess_extension(content_type) or ""
        return f"messages/{date_path}/{uuid.uuid4().hex}{ext}"

    async def upload(self, data: bytes, content_type: str) -> str:
        key = self._storage_key(content_type)
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL="public-read",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Image upload to bucket %s failed", self._bucket)
            raise UpstreamError("Image upload failed") from exc
        logger.debug("Uploaded image %s (%d bytes)", key, len(data))
        return f"{self._public_url}/{key}"
