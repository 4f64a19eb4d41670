"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Attributes are snake_case in Python; on the wire they are camelCase
(`hasPinned`, `avatarUrl`, ...) through the alias generator on APIModel.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN_USERNAME = "unknown"


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(APIModel):
    message: str


# ──────────────────────────── Users ───────────────────────────────────────

class UserSummary(APIModel):
    """A user on the other side of a follow edge. Never exposes email or hash."""
    id: int
    username: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime


class FollowersResponse(APIModel):
    followers: list[UserSummary]


class FollowingResponse(APIModel):
    following: list[UserSummary]


# ──────────────────────────── Posts ───────────────────────────────────────

class CreatePostRequest(APIModel):
    # Raw base64 or a data URL ("data:image/png;base64,...")
    image_base64: str
    image_file_type: str
    caption: Optional[str] = None


class PostView(APIModel):
    id: int
    image_url: str
    caption: Optional[str]
    created_at: datetime
    user_id: int
    username: str = UNKNOWN_USERNAME
    avatar_url: Optional[str] = None
    has_pinned: bool = False


# ──────────────────────────── Pins ────────────────────────────────────────

class PinView(APIModel):
    """A pin enriched with the pinned post's display fields."""
    id: int
    created_at: datetime
    post_id: int
    image_url: str
    caption: Optional[str] = None


class PinsResponse(APIModel):
    pins: list[PinView]


# ──────────────────────────── Profile ─────────────────────────────────────

class ProfileView(APIModel):
    id: int
    username: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    followers_count: int
    following_count: int
    pins: list[PinView] = Field(default_factory=list)
    has_followed: bool = False


# ──────────────────────────── Comments ────────────────────────────────────

class CreateCommentRequest(APIModel):
    text: str


class CommentView(APIModel):
    id: int
    text: str
    user_id: int
    post_id: int
    username: str = UNKNOWN_USERNAME
    avatar_url: Optional[str] = None
    created_at: datetime
