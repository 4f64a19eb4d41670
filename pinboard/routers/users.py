"""
User & follow-graph endpoints:
  POST   /users/{user_id}/follow     — follow a user
  DELETE /users/{user_id}/unfollow   — unfollow
  GET    /users/{user_id}/profile    — profile, counts, pins, hasFollowed
  GET    /users/{user_id}/posts      — a user's posts
  GET    /users/{user_id}/pins       — a user's pins
  GET    /users/{user_id}/followers  — who follows the user
  GET    /users/{user_id}/following  — who the user follows
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from pinboard.auth import get_current_viewer, get_optional_viewer
from pinboard.dependencies import get_store
from pinboard.schemas import (
    FollowersResponse,
    FollowingResponse,
    MessageResponse,
    PinsResponse,
    PostView,
    ProfileView,
)
from pinboard.services import feed, graph
from pinboard.store import RelationStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{user_id}/follow", response_model=MessageResponse)
async def follow_user(
    user_id: int,
    viewer_id: int = Depends(get_current_viewer),
    store: RelationStore = Depends(get_store),
):
    await graph.follow(store, viewer_id, user_id)
    await store.commit()
    return MessageResponse(message=f"Successfully followed user {user_id}")


@router.delete("/{user_id}/unfollow", response_model=MessageResponse)
async def unfollow_user(
    user_id: int,
    viewer_id: int = Depends(get_current_viewer),
    store: RelationStore = Depends(get_store),
):
    await graph.unfollow(store, viewer_id, user_id)
    await store.commit()
    return MessageResponse(message=f"Successfully unfollowed user {user_id}")


@router.get("/{user_id}/profile", response_model=ProfileView)
async def get_profile(
    user_id: int,
    viewer_id: Optional[int] = Depends(get_optional_viewer),
    store: RelationStore = Depends(get_store),
):
    return await feed.get_user_profile(store, user_id, viewer_id)


@router.get("/{user_id}/posts", response_model=list[PostView])
async def get_user_posts(
    user_id: int,
    viewer_id: Optional[int] = Depends(get_optional_viewer),
    store: RelationStore = Depends(get_store),
):
    return await feed.get_posts_by_user(store, user_id, viewer_id)


@router.get("/{user_id}/pins", response_model=PinsResponse)
async def get_user_pins(user_id: int, store: RelationStore = Depends(get_store)):
    return PinsResponse(pins=await feed.get_pinned_posts(store, user_id))


@router.get("/{user_id}/followers", response_model=FollowersResponse)
async def list_followers(user_id: int, store: RelationStore = Depends(get_store)):
    return FollowersResponse(followers=await feed.get_followers(store, user_id))


@router.get("/{user_id}/following", response_model=FollowingResponse)
async def list_following(user_id: int, store: RelationStore = Depends(get_store)):
    return FollowingResponse(following=await feed.get_following(store, user_id))
