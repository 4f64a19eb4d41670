"""
Post Publisher — the write side of the feed.

  1. Validate the image payload (base64, image/* MIME type).
  2. Validate the owner exists.
  3. Upload the bytes to object storage (delegated to `uploader`).
  4. Persist the post row and return its projection.

Nothing is uploaded or written until 1 and 2 pass.
"""
import base64
import binascii
import logging
import re
from collections.abc import Callable
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from opentelemetry import trace

from pinboard.errors import InvalidUpload, UploadFailed, UserNotFound
from pinboard.schemas import PostView
from pinboard.services.feed import build_post_view
from pinboard.store import RelationStore
from pinboard.telemetry import POST_INGESTION_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# (image bytes, MIME type) -> public URL
Uploader = Callable[[bytes, str], str]

_DATA_URL_PREFIX = re.compile(r"^data:(image/[\w.+-]+);base64,")


def decode_image(image_base64: str, image_file_type: str) -> bytes:
    if not image_base64 or not (image_file_type or "").startswith("image/"):
        raise InvalidUpload()

    payload = image_base64.strip()
    prefix = _DATA_URL_PREFIX.match(payload)
    if prefix:
        payload = payload[prefix.end():]

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidUpload("imageBase64 is not valid base64.") from exc
    if not data:
        raise InvalidUpload()
    return data


async def create_post(
    store: RelationStore,
    uploader: Uploader,
    owner_id: int,
    image_base64: str,
    image_file_type: str,
    caption: Optional[str] = None,
) -> PostView:
    with tracer.start_as_current_span("create_post") as span:
        data = decode_image(image_base64, image_file_type)

        owner = await store.get_user(owner_id)
        if owner is None:
            raise UserNotFound()

        try:
            image_url = await run_in_threadpool(uploader, data, image_file_type)
        except Exception as exc:
            logger.error("Image upload failed for user %s", owner_id, exc_info=exc)
            raise UploadFailed() from exc

        post = await store.add_post(
            owner_id, image_url, caption if caption and caption.strip() else None
        )

        span.set_attribute("post.id", post.id)
        span.set_attribute("post.user_id", owner_id)
        POST_INGESTION_TOTAL.inc()
        logger.info("Post created: %s by user %s", post.id, owner_id)
        return build_post_view(post, owner, pinned=False)
