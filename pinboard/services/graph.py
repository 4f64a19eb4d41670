"""
Graph Mutation Engine — follow / unfollow edges.

Validation order for follow: self-follow, target existence, follower
existence, existing edge. Nothing is written until all of them pass. The
unique index on (follower_id, followed_id) backs the existence pre-check, so
two concurrent follows of the same pair still produce exactly one edge and
one conflict.
"""
import logging

from opentelemetry import trace

from pinboard.errors import (
    AlreadyFollowing,
    NotFollowing,
    SelfFollow,
    TargetNotFound,
    UserNotFound,
)
from pinboard.models import Follow
from pinboard.store import DuplicateRecord, RelationStore
from pinboard.telemetry import GRAPH_MUTATIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def follow(store: RelationStore, follower_id: int, target_id: int) -> Follow:
    with tracer.start_as_current_span("follow_user") as span:
        span.set_attribute("follower.id", follower_id)
        span.set_attribute("target.id", target_id)

        if follower_id == target_id:
            raise SelfFollow()

        if await store.get_user(target_id) is None:
            raise TargetNotFound()
        if await store.get_user(follower_id) is None:
            raise UserNotFound()

        if await store.get_follow(follower_id, target_id) is not None:
            raise AlreadyFollowing()

        try:
            edge = await store.add_follow(follower_id, target_id)
        except DuplicateRecord as exc:
            raise AlreadyFollowing() from exc

        GRAPH_MUTATIONS_TOTAL.labels(action="follow").inc()
        logger.info("%s followed %s", follower_id, target_id)
        return edge


async def unfollow(store: RelationStore, follower_id: int, target_id: int) -> None:
    with tracer.start_as_current_span("unfollow_user"):
        removed = await store.delete_follow(follower_id, target_id)
        if removed == 0:
            raise NotFollowing()

        GRAPH_MUTATIONS_TOTAL.labels(action="unfollow").inc()
        logger.info("%s unfollowed %s", follower_id, target_id)
