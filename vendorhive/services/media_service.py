"""
Image uploads to S3-compatible object storage (AWS S3, Cloudflare R2, MinIO).

Objects are written under ``<media_folder>/`` with a random name and served
from ``media_public_base_url``.
"""
import os
import uuid
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from vendorhive.api.middleware.error_handler import BadRequestException, UpstreamServiceException
from vendorhive.lib.logging import get_logger
from vendorhive.lib.settings import Settings

logger = get_logger(__name__)

ALLOWED_IMAGE_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}

# Browsers occasionally send the non-standard image/jpg
ACCEPTED_CONTENT_TYPES = set(ALLOWED_IMAGE_TYPES.values()) | {"image/jpg"}

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB


def build_s3_client(settings: Settings):
    """Create an S3 client from the media settings."""
    return boto3.client(
        "s3",
        endpoint_url=settings.media_endpoint_url,
        region_name=settings.media_region,
        aws_access_key_id=settings.media_access_key_id or None,
        aws_secret_access_key=settings.media_secret_access_key or None,
        config=Config(signature_version="s3v4"),
    )


class MediaService:
    """Validates and stores uploaded images."""

    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self._client = client

    @property
    def client(self):
        # Built lazily so apps without media settings still start
        if self._client is None:
            self._client = build_s3_client(self.settings)
        return self._client

    def public_url(self, key: str) -> str:
        base = self.settings.media_public_base_url.rstrip("/")
        if base:
            return f"{base}/{key}"
        if self.settings.media_endpoint_url:
            return f"{self.settings.media_endpoint_url.rstrip('/')}/{self.settings.media_bucket}/{key}"
        return f"https://{self.settings.media_bucket}.s3.amazonaws.com/{key}"

    def upload_image(self, filename: Optional[str], content_type: Optional[str], data: bytes) -> str:
        """Store an image and return its public URL.

        Raises:
            BadRequestException: not a jpg/jpeg/png/gif, empty or too large
            UpstreamServiceException: the object store rejected the upload
        """
        extension = os.path.splitext(filename or "")[1].lower()
        if extension not in ALLOWED_IMAGE_TYPES or (content_type or "").lower() not in ACCEPTED_CONTENT_TYPES:
            raise BadRequestException("Only image files (jpg, jpeg, png, gif) are allowed")
        if not data:
            raise BadRequestException("No file uploaded")
        if len(data) > MAX_IMAGE_BYTES:
            raise BadRequestException(
                "File size exceeds 5MB limit",
                details={"size": len(data), "limit": MAX_IMAGE_BYTES},
            )

        key = f"{self.settings.media_folder.strip('/')}/{uuid.uuid4().hex}{extension}"
        try:
            self.client.put_object(
                Bucket=self.settings.media_bucket,
                Key=key,
                Body=data,
                ContentType=ALLOWED_IMAGE_TYPES[extension],
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Image upload failed",
                extra={"key": key, "error": str(e)},
            )
            raise UpstreamServiceException("Failed to upload image") from e

        logger.info("Image uploaded", extra={"key": key, "size": len(data)})
        return self.public_url(key)
