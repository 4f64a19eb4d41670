"""
Relation Store — the query/command surface the engine operations consume.

`RelationStore` is the protocol every engine function takes as its first
argument. `SqlRelationStore` implements it over one request-scoped
`AsyncSession`, so every call made through one instance shares a
transaction, made durable only by `commit()`. Tests substitute an
in-memory implementation.

Storage failures never leak out of this module as SQLAlchemy exceptions:
  • timeouts / lost connections  → StoreUnavailable (transient, retryable)
  • anything else from the driver → StoreError (internal)
  • unique-index violations      → DuplicateRecord (the engine decides)
"""
import asyncio
import logging
from collections.abc import Iterable
from contextlib import contextmanager
from typing import Optional, Protocol

from sqlalchemy import delete, func, literal_column, select
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from pinboard.config import settings
from pinboard.errors import StoreError, StoreUnavailable
from pinboard.models import Comment, Follow, Pin, Post, User, caption_document

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class DuplicateRecord(Exception):
    """An insert collided with a unique index."""


class RelationStore(Protocol):
    # ── users ──────────────────────────────────────────────────────────────
    async def get_user(self, user_id: int) -> Optional[User]: ...

    async def get_users(self, user_ids: Iterable[int]) -> dict[int, User]: ...

    # ── posts ──────────────────────────────────────────────────────────────
    async def get_post(self, post_id: int) -> Optional[Post]: ...

    async def get_posts(self, post_ids: Iterable[int]) -> dict[int, Post]: ...

    async def list_posts(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        owner_id: Optional[int] = None,
    ) -> list[Post]: ...

    async def search_posts(self, tokens: list[str], limit: int, offset: int) -> list[Post]: ...

    async def add_post(self, user_id: int, image_url: str, caption: Optional[str]) -> Post: ...

    # ── follows ────────────────────────────────────────────────────────────
    async def get_follow(self, follower_id: int, followed_id: int) -> Optional[Follow]: ...

    async def add_follow(self, follower_id: int, followed_id: int) -> Follow: ...

    async def delete_follow(self, follower_id: int, followed_id: int) -> int: ...

    async def count_followers(self, user_id: int) -> int: ...

    async def count_following(self, user_id: int) -> int: ...

    async def list_followers(self, user_id: int) -> list[User]: ...

    async def list_following(self, user_id: int) -> list[User]: ...

    # ── pins ───────────────────────────────────────────────────────────────
    async def get_pin(self, user_id: int, post_id: int) -> Optional[Pin]: ...

    async def add_pin(self, user_id: int, post_id: int) -> Pin: ...

    async def delete_pins(self, user_id: int, post_id: int) -> int: ...

    async def pinned_post_ids(self, user_id: int, post_ids: Iterable[int]) -> set[int]: ...

    async def list_pins(self, user_id: int) -> list[Pin]: ...

    # ── comments ───────────────────────────────────────────────────────────
    async def add_comment(self, user_id: int, post_id: int, content: str) -> Comment: ...

    async def list_comments(self, post_id: int, limit: int, offset: int) -> list[Comment]: ...

    # ── transaction ────────────────────────────────────────────────────────
    async def commit(self) -> None: ...


def _is_unique_violation(exc: IntegrityError) -> bool:
    code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    return code == UNIQUE_VIOLATION


@contextmanager
def _store_errors(operation: str):
    try:
        yield
    except (OperationalError, InterfaceError, PoolTimeoutError, asyncio.TimeoutError) as exc:
        logger.warning("Store unavailable during %s: %s", operation, exc)
        raise StoreUnavailable() from exc
    except SQLAlchemyError as exc:
        logger.error("Store failure during %s", operation, exc_info=exc)
        raise StoreError() from exc


class SqlRelationStore:
    """RelationStore over a single SQLAlchemy AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _scalars(self, operation: str, stmt) -> list:
        with _store_errors(operation):
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

    async def _scalar(self, operation: str, stmt):
        with _store_errors(operation):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def _insert(self, operation: str, row):
        """Insert inside a SAVEPOINT so a unique violation leaves the
        request transaction usable."""
        with _store_errors(operation):
            try:
                async with self.session.begin_nested():
                    self.session.add(row)
            except IntegrityError as exc:
                if not _is_unique_violation(exc):
                    raise
                raise DuplicateRecord(operation) from exc
            await self.session.refresh(row)  # load server-generated created_at
            return row

    async def _delete(self, operation: str, stmt) -> int:
        with _store_errors(operation):
            result = await self.session.execute(stmt)
            return result.rowcount or 0

    # ── users ──────────────────────────────────────────────────────────────

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._scalar("get_user", select(User).where(User.id == user_id))

    async def get_users(self, user_ids: Iterable[int]) -> dict[int, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        users = await self._scalars("get_users", select(User).where(User.id.in_(ids)))
        return {u.id: u for u in users}

    # ── posts ──────────────────────────────────────────────────────────────

    async def get_post(self, post_id: int) -> Optional[Post]:
        return await self._scalar("get_post", select(Post).where(Post.id == post_id))

    async def get_posts(self, post_ids: Iterable[int]) -> dict[int, Post]:
        ids = set(post_ids)
        if not ids:
            return {}
        posts = await self._scalars("get_posts", select(Post).where(Post.id.in_(ids)))
        return {p.id: p for p in posts}

    async def list_posts(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        owner_id: Optional[int] = None,
    ) -> list[Post]:
        stmt = select(Post).order_by(Post.created_at.desc(), Post.id.desc())
        if owner_id is not None:
            stmt = stmt.where(Post.user_id == owner_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        return await self._scalars("list_posts", stmt)

    async def search_posts(self, tokens: list[str], limit: int, offset: int) -> list[Post]:
        # plainto_tsquery ANDs every lexeme of its input
        query = func.plainto_tsquery(
            literal_column(f"'{settings.search_config}'::regconfig"),
            " ".join(tokens),
        )
        stmt = (
            select(Post)
            .where(caption_document().op("@@")(query))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return await self._scalars("search_posts", stmt)

    async def add_post(self, user_id: int, image_url: str, caption: Optional[str]) -> Post:
        return await self._insert(
            "add_post", Post(user_id=user_id, image_url=image_url, caption=caption)
        )

    # ── follows ────────────────────────────────────────────────────────────

    async def get_follow(self, follower_id: int, followed_id: int) -> Optional[Follow]:
        return await self._scalar(
            "get_follow",
            select(Follow).where(
                Follow.follower_id == follower_id,
                Follow.followed_id == followed_id,
            ),
        )

    async def add_follow(self, follower_id: int, followed_id: int) -> Follow:
        return await self._insert(
            "add_follow", Follow(follower_id=follower_id, followed_id=followed_id)
        )

    async def delete_follow(self, follower_id: int, followed_id: int) -> int:
        return await self._delete(
            "delete_follow",
            delete(Follow).where(
                Follow.follower_id == follower_id,
                Follow.followed_id == followed_id,
            ),
        )

    async def count_followers(self, user_id: int) -> int:
        count = await self._scalar(
            "count_followers",
            select(func.count()).select_from(Follow).where(Follow.followed_id == user_id),
        )
        return count or 0

    async def count_following(self, user_id: int) -> int:
        count = await self._scalar(
            "count_following",
            select(func.count()).select_from(Follow).where(Follow.follower_id == user_id),
        )
        return count or 0

    async def list_followers(self, user_id: int) -> list[User]:
        stmt = (
            select(User)
            .join(Follow, Follow.follower_id == User.id)
            .where(Follow.followed_id == user_id)
            .order_by(Follow.created_at.desc(), Follow.id.desc())
        )
        return await self._scalars("list_followers", stmt)

    async def list_following(self, user_id: int) -> list[User]:
        stmt = (
            select(User)
            .join(Follow, Follow.followed_id == User.id)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at.desc(), Follow.id.desc())
        )
        return await self._scalars("list_following", stmt)

    # ── pins ───────────────────────────────────────────────────────────────

    async def get_pin(self, user_id: int, post_id: int) -> Optional[Pin]:
        return await self._scalar(
            "get_pin",
            select(Pin).where(Pin.user_id == user_id, Pin.post_id == post_id),
        )

    async def add_pin(self, user_id: int, post_id: int) -> Pin:
        return await self._insert("add_pin", Pin(user_id=user_id, post_id=post_id))

    async def delete_pins(self, user_id: int, post_id: int) -> int:
        return await self._delete(
            "delete_pins",
            delete(Pin).where(Pin.user_id == user_id, Pin.post_id == post_id),
        )

    async def pinned_post_ids(self, user_id: int, post_ids: Iterable[int]) -> set[int]:
        ids = set(post_ids)
        if not ids:
            return set()
        rows = await self._scalars(
            "pinned_post_ids",
            select(Pin.post_id).where(Pin.user_id == user_id, Pin.post_id.in_(ids)),
        )
        return set(rows)

    async def list_pins(self, user_id: int) -> list[Pin]:
        stmt = (
            select(Pin)
            .where(Pin.user_id == user_id)
            .order_by(Pin.created_at.desc(), Pin.id.desc())
        )
        return await self._scalars("list_pins", stmt)

    # ── comments ───────────────────────────────────────────────────────────

    async def add_comment(self, user_id: int, post_id: int, content: str) -> Comment:
        return await self._insert(
            "add_comment", Comment(user_id=user_id, post_id=post_id, content=content)
        )

    async def list_comments(self, post_id: int, limit: int, offset: int) -> list[Comment]:
        stmt = (
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return await self._scalars("list_comments", stmt)

    # ── transaction ────────────────────────────────────────────────────────

    async def commit(self) -> None:
        """Mutating routes call this before responding."""
        with _store_errors("commit"):
            await self.session.commit()
