"""
Post endpoints:
  POST /posts                         — create a post (image upload + row)
  GET  /posts?limit&offset            — reverse-chronological feed
  GET  /posts/search?query&limit&offset — caption full-text search
  GET  /posts/{post_id}               — fetch a single post
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from pinboard.auth import get_current_viewer, get_optional_viewer
from pinboard.config import settings
from pinboard.dependencies import get_store, get_uploader
from pinboard.schemas import CreatePostRequest, PostView
from pinboard.services import feed, posts, search
from pinboard.services.posts import Uploader
from pinboard.store import RelationStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=PostView, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: CreatePostRequest,
    viewer_id: int = Depends(get_current_viewer),
    store: RelationStore = Depends(get_store),
    uploader: Uploader = Depends(get_uploader),
):
    post = await posts.create_post(
        store,
        uploader,
        owner_id=viewer_id,
        image_base64=body.image_base64,
        image_file_type=body.image_file_type,
        caption=body.caption,
    )
    await store.commit()
    return post


@router.get("", response_model=list[PostView])
async def get_feed(
    limit: int = Query(settings.default_page_size),
    offset: int = Query(0),
    viewer_id: Optional[int] = Depends(get_optional_viewer),
    store: RelationStore = Depends(get_store),
):
    return await feed.get_feed(store, viewer_id, limit=limit, offset=offset)


# Declared before /{post_id} so "search" is not parsed as an id
@router.get("/search", response_model=list[PostView])
async def search_posts(
    query: str = Query(""),
    limit: int = Query(settings.default_page_size),
    offset: int = Query(0),
    viewer_id: Optional[int] = Depends(get_optional_viewer),
    store: RelationStore = Depends(get_store),
):
    return await search.search_posts(store, query, viewer_id, limit=limit, offset=offset)


@router.get("/{post_id}", response_model=PostView)
async def get_post(
    post_id: int,
    viewer_id: Optional[int] = Depends(get_optional_viewer),
    store: RelationStore = Depends(get_store),
):
    return await feed.get_post_by_id(store, post_id, viewer_id)
