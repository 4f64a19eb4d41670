"""
Pin Engine — per (user, post) bookmarks.

At most one live pin exists per pair (unique index `uq_pins_user_post`).
Pinning twice is a no-op that returns the existing pin; unpinning something
that was never pinned succeeds.
"""
import logging
from collections.abc import Iterable
from typing import Optional

from opentelemetry import trace

from pinboard.errors import PostNotFound, StoreError, UserNotFound
from pinboard.models import Pin
from pinboard.store import DuplicateRecord, RelationStore
from pinboard.telemetry import PIN_MUTATIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def pin(store: RelationStore, user_id: int, post_id: int) -> tuple[Pin, bool]:
    """
    Pin `post_id` for `user_id`.

    Returns `(pin, created)`; `created` is False when the pair was already
    pinned, including when a concurrent request won the insert.
    """
    with tracer.start_as_current_span("pin_post") as span:
        span.set_attribute("user.id", user_id)
        span.set_attribute("post.id", post_id)

        if await store.get_post(post_id) is None:
            raise PostNotFound()
        if await store.get_user(user_id) is None:
            raise UserNotFound()

        existing = await store.get_pin(user_id, post_id)
        if existing is not None:
            PIN_MUTATIONS_TOTAL.labels(action="pin_noop").inc()
            return existing, False

        try:
            record = await store.add_pin(user_id, post_id)
        except DuplicateRecord as exc:
            existing = await store.get_pin(user_id, post_id)
            if existing is None:
                # lost the race to a pin that was removed again
                raise StoreError() from exc
            PIN_MUTATIONS_TOTAL.labels(action="pin_noop").inc()
            return existing, False

        PIN_MUTATIONS_TOTAL.labels(action="pin").inc()
        logger.info("User %s pinned post %s", user_id, post_id)
        return record, True


async def unpin(store: RelationStore, user_id: int, post_id: int) -> None:
    with tracer.start_as_current_span("unpin_post"):
        removed = await store.delete_pins(user_id, post_id)
        PIN_MUTATIONS_TOTAL.labels(action="unpin").inc()
        if removed:
            logger.info("User %s unpinned post %s", user_id, post_id)


async def has_pinned(store: RelationStore, viewer_id: Optional[int], post_id: int) -> bool:
    if viewer_id is None:
        return False
    return await store.get_pin(viewer_id, post_id) is not None


async def has_pinned_batch(
    store: RelationStore,
    viewer_id: Optional[int],
    post_ids: Iterable[int],
) -> set[int]:
    """Subset of `post_ids` the viewer has pinned, in a single store query."""
    ids = set(post_ids)
    if viewer_id is None or not ids:
        return set()
    return await store.pinned_post_ids(viewer_id, ids)
