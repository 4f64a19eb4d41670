"""
In-memory RelationStore used by the test suite.

Mirrors the SQL store's observable behaviour: store-assigned increasing ids,
server-side timestamps, newest-first ordering with id as tie-break, unique
(user, post) pins and (follower, followed) edges, and lexeme-based caption
search. Every call is recorded in `calls` so tests can assert on query
counts.
"""
import re
from datetime import datetime, timedelta, timezone
from itertools import count

from pinboard.models import Comment, Follow, Pin, Post, User
from pinboard.store import DuplicateRecord

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)

_WORD = re.compile(r"\w+")


def lexemes(text):
    """Lower-cased word tokens; stands in for to_tsvector without stemming."""
    return set(_WORD.findall((text or "").lower()))


def caption_matches(tokens, caption):
    document = lexemes(caption)
    wanted = set()
    for token in tokens:
        wanted |= lexemes(token)
    return bool(wanted) and wanted <= document


def _newest_first(rows):
    return sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)


def _page(rows, limit, offset):
    rows = rows[offset:]
    return rows if limit is None else rows[:limit]


class MemoryRelationStore:
    def __init__(self):
        self.users: dict[int, User] = {}
        self.posts: dict[int, Post] = {}
        self.comments: dict[int, Comment] = {}
        self.pins: dict[int, Pin] = {}
        self.follows: dict[int, Follow] = {}
        self.calls: list[str] = []
        self.commits = 0
        self._ids = count(1)
        self._ticks = count(1)

    def _now(self) -> datetime:
        return EPOCH + timedelta(seconds=next(self._ticks))

    # ── test seeding ───────────────────────────────────────────────────────

    def create_user(self, username, bio=None, avatar_url=None, user_id=None) -> User:
        user = User(
            id=user_id or next(self._ids),
            username=username,
            email=f"{username}@example.com",
            password_hash="not-a-real-hash",
            bio=bio,
            avatar_url=avatar_url,
            created_at=self._now(),
        )
        self.users[user.id] = user
        return user

    def create_post(self, owner, caption=None, image_url="http://img/x.jpg", post_id=None) -> Post:
        post = Post(
            id=post_id or next(self._ids),
            user_id=owner.id,
            image_url=image_url,
            caption=caption,
            created_at=self._now(),
        )
        self.posts[post.id] = post
        return post

    # ── users ──────────────────────────────────────────────────────────────

    async def get_user(self, user_id):
        self.calls.append("get_user")
        return self.users.get(user_id)

    async def get_users(self, user_ids):
        self.calls.append("get_users")
        return {i: self.users[i] for i in set(user_ids) if i in self.users}

    # ── posts ──────────────────────────────────────────────────────────────

    async def get_post(self, post_id):
        self.calls.append("get_post")
        return self.posts.get(post_id)

    async def get_posts(self, post_ids):
        self.calls.append("get_posts")
        return {i: self.posts[i] for i in set(post_ids) if i in self.posts}

    async def list_posts(self, limit=None, offset=0, owner_id=None):
        self.calls.append("list_posts")
        rows = [p for p in self.posts.values() if owner_id is None or p.user_id == owner_id]
        return _page(_newest_first(rows), limit, offset)

    async def search_posts(self, tokens, limit, offset):
        self.calls.append("search_posts")
        rows = [p for p in self.posts.values() if caption_matches(tokens, p.caption)]
        return _page(_newest_first(rows), limit, offset)

    async def add_post(self, user_id, image_url, caption):
        self.calls.append("add_post")
        post = Post(
            id=next(self._ids),
            user_id=user_id,
            image_url=image_url,
            caption=caption,
            created_at=self._now(),
        )
        self.posts[post.id] = post
        return post

    # ── follows ────────────────────────────────────────────────────────────

    async def get_follow(self, follower_id, followed_id):
        self.calls.append("get_follow")
        for f in self.follows.values():
            if f.follower_id == follower_id and f.followed_id == followed_id:
                return f
        return None

    async def add_follow(self, follower_id, followed_id):
        self.calls.append("add_follow")
        if any(
            f.follower_id == follower_id and f.followed_id == followed_id
            for f in self.follows.values()
        ):
            raise DuplicateRecord("add_follow")
        edge = Follow(
            id=next(self._ids),
            follower_id=follower_id,
            followed_id=followed_id,
            created_at=self._now(),
        )
        self.follows[edge.id] = edge
        return edge

    async def delete_follow(self, follower_id, followed_id):
        self.calls.append("delete_follow")
        doomed = [
            f.id for f in self.follows.values()
            if f.follower_id == follower_id and f.followed_id == followed_id
        ]
        for i in doomed:
            del self.follows[i]
        return len(doomed)

    async def count_followers(self, user_id):
        self.calls.append("count_followers")
        return sum(1 for f in self.follows.values() if f.followed_id == user_id)

    async def count_following(self, user_id):
        self.calls.append("count_following")
        return sum(1 for f in self.follows.values() if f.follower_id == user_id)

    async def list_followers(self, user_id):
        self.calls.append("list_followers")
        edges = _newest_first([f for f in self.follows.values() if f.followed_id == user_id])
        return [self.users[f.follower_id] for f in edges if f.follower_id in self.users]

    async def list_following(self, user_id):
        self.calls.append("list_following")
        edges = _newest_first([f for f in self.follows.values() if f.follower_id == user_id])
        return [self.users[f.followed_id] for f in edges if f.followed_id in self.users]

    # ── pins ───────────────────────────────────────────────────────────────

    async def get_pin(self, user_id, post_id):
        self.calls.append("get_pin")
        for p in self.pins.values():
            if p.user_id == user_id and p.post_id == post_id:
                return p
        return None

    async def add_pin(self, user_id, post_id):
        self.calls.append("add_pin")
        if any(p.user_id == user_id and p.post_id == post_id for p in self.pins.values()):
            raise DuplicateRecord("add_pin")
        pin = Pin(id=next(self._ids), user_id=user_id, post_id=post_id, created_at=self._now())
        self.pins[pin.id] = pin
        return pin

    async def delete_pins(self, user_id, post_id):
        self.calls.append("delete_pins")
        doomed = [
            p.id for p in self.pins.values() if p.user_id == user_id and p.post_id == post_id
        ]
        for i in doomed:
            del self.pins[i]
        return len(doomed)

    async def pinned_post_ids(self, user_id, post_ids):
        self.calls.append("pinned_post_ids")
        wanted = set(post_ids)
        return {p.post_id for p in self.pins.values() if p.user_id == user_id and p.post_id in wanted}

    async def list_pins(self, user_id):
        self.calls.append("list_pins")
        return _newest_first([p for p in self.pins.values() if p.user_id == user_id])

    # ── comments ───────────────────────────────────────────────────────────

    async def add_comment(self, user_id, post_id, content):
        self.calls.append("add_comment")
        comment = Comment(
            id=next(self._ids),
            user_id=user_id,
            post_id=post_id,
            content=content,
            created_at=self._now(),
        )
        self.comments[comment.id] = comment
        return comment

    async def list_comments(self, post_id, limit, offset):
        self.calls.append("list_comments")
        rows = [c for c in self.comments.values() if c.post_id == post_id]
        return _page(_newest_first(rows), limit, offset)

    # ── transaction ────────────────────────────────────────────────────────

    async def commit(self):
        self.calls.append("commit")
        self.commits += 1
