"""
Comment Engine — append-only comments on posts.
"""
import logging

from opentelemetry import trace

from pinboard.errors import EmptyText, PostNotFound, UserNotFound
from pinboard.models import Comment, User
from pinboard.schemas import UNKNOWN_USERNAME, CommentView
from pinboard.services.feed import check_page
from pinboard.store import RelationStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _build_comment_view(comment: Comment, author: User) -> CommentView:
    return CommentView(
        id=comment.id,
        text=comment.content,
        user_id=comment.user_id,
        post_id=comment.post_id,
        username=author.username or UNKNOWN_USERNAME,
        avatar_url=author.avatar_url,
        created_at=comment.created_at,
    )


async def create_comment(
    store: RelationStore,
    author_id: int,
    post_id: int,
    text: str,
) -> CommentView:
    with tracer.start_as_current_span("create_comment") as span:
        span.set_attribute("post.id", post_id)

        if await store.get_post(post_id) is None:
            raise PostNotFound()
        if not text or not text.strip():
            raise EmptyText()

        author = await store.get_user(author_id)
        if author is None:
            raise UserNotFound()

        comment = await store.add_comment(author_id, post_id, text)
        logger.info("User %s commented on post %s", author_id, post_id)
        return _build_comment_view(comment, author)


async def list_comments(
    store: RelationStore,
    post_id: int,
    limit: int,
    offset: int,
) -> list[CommentView]:
    """Newest first. Comments whose author no longer resolves are left out."""
    check_page(limit, offset)

    if await store.get_post(post_id) is None:
        raise PostNotFound()

    comments = await store.list_comments(post_id, limit=limit, offset=offset)
    authors = await store.get_users({c.user_id for c in comments})

    views = []
    for c in comments:
        author = authors.get(c.user_id)
        if c.post_id != post_id or author is None:
            logger.debug("Skipping orphaned comment %s", c.id)
            continue
        views.append(_build_comment_view(c, author))
    return views
