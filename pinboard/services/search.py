"""
Search Engine — conjunctive full-text search over post captions.

A post matches when every query token is present in the caption's lexical
representation (word lexemes, not substrings: "cat" does not match
"category"). Matching itself belongs to the store; Postgres evaluates it as
`to_tsvector(caption) @@ plainto_tsquery(tokens)`.
"""
import logging
import time
from typing import Optional

from opentelemetry import trace

from pinboard.errors import EmptyQuery
from pinboard.schemas import PostView
from pinboard.services.feed import build_post_views, check_page
from pinboard.store import RelationStore
from pinboard.telemetry import SEARCH_LATENCY

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def tokenize(query_text: str) -> list[str]:
    """Split a query on whitespace. Blank input yields no tokens."""
    return (query_text or "").split()


async def search_posts(
    store: RelationStore,
    query_text: str,
    viewer_id: Optional[int],
    limit: int,
    offset: int,
) -> list[PostView]:
    tokens = tokenize(query_text)
    if not tokens:
        raise EmptyQuery()
    check_page(limit, offset)
    start_time = time.time()

    with tracer.start_as_current_span("search_posts") as span:
        span.set_attribute("search.token_count", len(tokens))

        posts = await store.search_posts(tokens, limit=limit, offset=offset)
        views = await build_post_views(store, posts, viewer_id)

        span.set_attribute("search.results", len(views))
        logger.debug("Search %r matched %d posts", tokens, len(views))

    SEARCH_LATENCY.observe(time.time() - start_time)
    return views
