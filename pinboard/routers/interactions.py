"""
Interaction endpoints (pins & comments), nested under a post:
  POST   /posts/{post_id}/pin       — pin (idempotent)
  DELETE /posts/{post_id}/unpin     — unpin (idempotent)
  POST   /posts/{post_id}/comments  — add a comment
  GET    /posts/{post_id}/comments?limit&offset — list comments, newest first
"""
import logging

from fastapi import APIRouter, Depends, Query, Response, status

from pinboard.auth import get_current_viewer
from pinboard.config import settings
from pinboard.dependencies import get_store
from pinboard.schemas import CommentView, CreateCommentRequest, MessageResponse
from pinboard.services import comments, pins
from pinboard.store import RelationStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/{post_id}/pin",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def pin_post(
    post_id: int,
    response: Response,
    viewer_id: int = Depends(get_current_viewer),
    store: RelationStore = Depends(get_store),
):
    _, created = await pins.pin(store, viewer_id, post_id)
    await store.commit()
    if not created:
        response.status_code = status.HTTP_200_OK
        return MessageResponse(message="Post already pinned")
    return MessageResponse(message="Post pinned successfully")


@router.delete("/{post_id}/unpin", response_model=MessageResponse)
async def unpin_post(
    post_id: int,
    viewer_id: int = Depends(get_current_viewer),
    store: RelationStore = Depends(get_store),
):
    await pins.unpin(store, viewer_id, post_id)
    await store.commit()
    return MessageResponse(message="Post unpinned successfully")


@router.post(
    "/{post_id}/comments",
    response_model=CommentView,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    post_id: int,
    body: CreateCommentRequest,
    viewer_id: int = Depends(get_current_viewer),
    store: RelationStore = Depends(get_store),
):
    comment = await comments.create_comment(store, viewer_id, post_id, body.text)
    await store.commit()
    return comment


@router.get("/{post_id}/comments", response_model=list[CommentView])
async def list_comments(
    post_id: int,
    limit: int = Query(settings.default_page_size),
    offset: int = Query(0),
    store: RelationStore = Depends(get_store),
):
    return await comments.list_comments(store, post_id, limit=limit, offset=offset)
