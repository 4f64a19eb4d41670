"""
Domain errors raised by the engine operations.

Every error carries the HTTP status it maps to and a message that is safe to
show to API clients. Routers never catch these; a single exception handler
in `pinboard.main` renders them.
"""
from fastapi import status


class PinboardError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


# ──────────────────────────── Not found ───────────────────────────────────

class NotFound(PinboardError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found."


class PostNotFound(NotFound):
    message = "Post not found."


class UserNotFound(NotFound):
    message = "User not found."


class TargetNotFound(NotFound):
    message = "User to follow not found."


class NotFollowing(NotFound):
    message = "Follow relationship not found."


class NoPostsFound(NotFound):
    message = "No posts found for this user."


class NoPinsFound(NotFound):
    message = "No pins found for this user."


class NoneFound(NotFound):
    message = "No users found."


# ──────────────────────────── Conflict ────────────────────────────────────

class Conflict(PinboardError):
    status_code = status.HTTP_409_CONFLICT
    message = "Conflict."


class SelfFollow(Conflict):
    message = "You cannot follow yourself."


class AlreadyFollowing(Conflict):
    message = "You are already following this user."


# ──────────────────────────── Invalid input ───────────────────────────────

class InvalidInput(PinboardError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input."


class EmptyQuery(InvalidInput):
    message = "Search query cannot be empty."


class EmptyText(InvalidInput):
    message = "Comment text cannot be empty."


class InvalidUpload(InvalidInput):
    message = "imageBase64 and a valid imageFileType are required."


class InvalidPage(InvalidInput):
    message = "Invalid pagination parameters."


# ──────────────────────────── Auth ────────────────────────────────────────

class Unauthorized(PinboardError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required."


# ──────────────────────────── Infrastructure ──────────────────────────────

class Transient(PinboardError):
    """Store unavailable or timed out — safe for the caller to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Service temporarily unavailable, please retry."


class StoreUnavailable(Transient):
    pass


class Internal(PinboardError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error."


class StoreError(Internal):
    pass


class UploadFailed(Internal):
    message = "Failed to create post."
