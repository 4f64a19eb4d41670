"""
S3-compatible (MinIO) client for post images.

Stores the raw image bytes as objects and returns a stable public URL that
is persisted on the post row. Reads go straight to object storage; the API
never streams image bytes.
"""
import logging
import mimetypes
import uuid
from io import BytesIO

import boto3
from botocore.client import Config

from pinboard.config import settings

logger = logging.getLogger(__name__)

_s3 = None


def init_object_storage() -> None:
    """Create the S3 client and ensure the image bucket exists."""
    global _s3
    scheme = "https" if settings.object_storage_use_ssl else "http"
    _s3 = boto3.client(
        "s3",
        endpoint_url=f"{scheme}://{settings.object_storage_endpoint}",
        aws_access_key_id=settings.object_storage_access_key,
        aws_secret_access_key=settings.object_storage_secret_key,
        config=Config(signature_version="s3v4"),
        region_name="us-east-1",
    )

    existing = [b["Name"] for b in _s3.list_buckets().get("Buckets", [])]
    if settings.object_storage_bucket not in existing:
        _s3.create_bucket(Bucket=settings.object_storage_bucket)
        logger.info("Created bucket '%s'", settings.object_storage_bucket)
    else:
        logger.info("Bucket '%s' already exists", settings.object_storage_bucket)


def get_s3():
    if _s3 is None:
        raise RuntimeError(
            "Object storage client not initialised — call init_object_storage() at startup"
        )
    return _s3


def object_key(content_type: str) -> str:
    """Key format: images/{uuid}{ext}, extension derived from the MIME type."""
    ext = mimetypes.guess_extension(content_type) or ".bin"
    return f"images/{uuid.uuid4()}{ext}"


def public_url(key: str) -> str:
    base = settings.object_storage_public_url.rstrip("/")
    return f"{base}/{settings.object_storage_bucket}/{key}"


def upload_image(data: bytes, content_type: str) -> str:
    """Upload image bytes and return the URL clients fetch them from."""
    key = object_key(content_type)
    get_s3().put_object(
        Bucket=settings.object_storage_bucket,
        Key=key,
        Body=BytesIO(data),
        ContentType=content_type,
    )
    logger.debug("Uploaded image to object storage: %s", key)
    return public_url(key)
