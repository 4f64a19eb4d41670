"""
Feed / Profile Aggregator.

Composes posts, owners, pins and follow edges into viewer-relative
projections. Every listing is assembled with a fixed number of store
queries regardless of page size:

  1. the page of posts
  2. the owners of those posts         (one batched lookup)
  3. the viewer's pins among those posts (one batched lookup)

Related rows that have gone missing (an owner, a pinned post) degrade the
projection instead of failing the request.
"""
import logging
import time
from collections.abc import Sequence
from typing import Optional

from opentelemetry import trace

from pinboard.config import settings
from pinboard.errors import (
    InvalidPage,
    NoneFound,
    NoPinsFound,
    NoPostsFound,
    PostNotFound,
    UserNotFound,
)
from pinboard.models import Pin, Post, User
from pinboard.schemas import UNKNOWN_USERNAME, PinView, PostView, ProfileView, UserSummary
from pinboard.services.pins import has_pinned_batch
from pinboard.store import RelationStore
from pinboard.telemetry import FEED_LATENCY

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def check_page(limit: int, offset: int) -> None:
    if limit < 1 or limit > settings.max_page_size or offset < 0:
        raise InvalidPage(
            f"limit must be between 1 and {settings.max_page_size}, offset must be >= 0."
        )


def build_post_view(post: Post, owner: Optional[User], pinned: bool) -> PostView:
    return PostView(
        id=post.id,
        image_url=post.image_url,
        caption=post.caption,
        created_at=post.created_at,
        user_id=post.user_id,
        username=(owner.username if owner else None) or UNKNOWN_USERNAME,
        avatar_url=owner.avatar_url if owner else None,
        has_pinned=pinned,
    )


async def build_post_views(
    store: RelationStore,
    posts: Sequence[Post],
    viewer_id: Optional[int],
) -> list[PostView]:
    """Annotate posts with owner display fields and viewer pin state."""
    if not posts:
        return []
    owners = await store.get_users({p.user_id for p in posts})
    pinned = await has_pinned_batch(store, viewer_id, [p.id for p in posts])
    return [
        build_post_view(p, owners.get(p.user_id), p.id in pinned)
        for p in posts
    ]


async def build_pin_views(store: RelationStore, pins: Sequence[Pin]) -> list[PinView]:
    """Attach post display fields; drop pins whose post is gone or imageless."""
    posts = await store.get_posts({p.post_id for p in pins})
    views = []
    for p in pins:
        post = posts.get(p.post_id)
        if post is None or not post.image_url:
            logger.debug("Skipping pin %s: post %s unavailable", p.id, p.post_id)
            continue
        views.append(
            PinView(
                id=p.id,
                created_at=p.created_at,
                post_id=p.post_id,
                image_url=post.image_url,
                caption=post.caption,
            )
        )
    return views


def build_user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        username=user.username,
        bio=user.bio,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
    )


# ──────────────────────────── Posts ───────────────────────────────────────

async def get_feed(
    store: RelationStore,
    viewer_id: Optional[int],
    limit: int,
    offset: int,
) -> list[PostView]:
    """All posts, newest first, paginated and annotated for the viewer."""
    check_page(limit, offset)
    start_time = time.time()

    with tracer.start_as_current_span("get_feed") as span:
        span.set_attribute("feed.limit", limit)
        span.set_attribute("feed.offset", offset)

        posts = await store.list_posts(limit=limit, offset=offset)
        views = await build_post_views(store, posts, viewer_id)

        span.set_attribute("feed.posts_returned", len(views))

    FEED_LATENCY.observe(time.time() - start_time)
    return views


async def get_posts_by_user(
    store: RelationStore,
    owner_id: int,
    viewer_id: Optional[int],
) -> list[PostView]:
    with tracer.start_as_current_span("get_posts_by_user") as span:
        span.set_attribute("owner.id", owner_id)

        posts = await store.list_posts(owner_id=owner_id)
        if not posts:
            raise NoPostsFound()
        return await build_post_views(store, posts, viewer_id)


async def get_post_by_id(
    store: RelationStore,
    post_id: int,
    viewer_id: Optional[int],
) -> PostView:
    post = await store.get_post(post_id)
    if post is None:
        raise PostNotFound()
    views = await build_post_views(store, [post], viewer_id)
    return views[0]


# ──────────────────────────── Profile & graph ─────────────────────────────

async def get_user_profile(
    store: RelationStore,
    target_id: int,
    viewer_id: Optional[int],
) -> ProfileView:
    with tracer.start_as_current_span("get_user_profile") as span:
        span.set_attribute("user.id", target_id)

        user = await store.get_user(target_id)
        if user is None:
            raise UserNotFound()

        followers_count = await store.count_followers(target_id)
        following_count = await store.count_following(target_id)
        pins = await build_pin_views(store, await store.list_pins(target_id))

        has_followed = False
        if viewer_id is not None:
            has_followed = await store.get_follow(viewer_id, target_id) is not None

        return ProfileView(
            id=user.id,
            username=user.username,
            bio=user.bio,
            avatar_url=user.avatar_url,
            created_at=user.created_at,
            followers_count=followers_count,
            following_count=following_count,
            pins=pins,
            has_followed=has_followed,
        )


async def get_pinned_posts(store: RelationStore, user_id: int) -> list[PinView]:
    pins = await store.list_pins(user_id)
    if not pins:
        raise NoPinsFound()
    return await build_pin_views(store, pins)


async def get_followers(store: RelationStore, user_id: int) -> list[UserSummary]:
    users = await store.list_followers(user_id)
    if not users:
        raise NoneFound("No followers found for this user.")
    return [build_user_summary(u) for u in users]


async def get_following(store: RelationStore, user_id: int) -> list[UserSummary]:
    users = await store.list_following(user_id)
    if not users:
        raise NoneFound("No following found for this user.")
    return [build_user_summary(u) for u in users]
