"""
Viewer resolution for FastAPI routes.

Tokens are issued elsewhere; this service only validates them. The viewer id
is read from the `userId` claim, falling back to the standard `sub`.

  get_optional_viewer — read endpoints; no header means an anonymous viewer
  get_current_viewer  — write endpoints; a valid token is required
"""
from typing import Any, Optional

import jwt
from fastapi import Depends, Header

from pinboard.config import settings
from pinboard.errors import Unauthorized


def _extract_bearer_token(authorization: str) -> str:
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2:
        raise Unauthorized("Invalid Authorization header format.")

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise Unauthorized("Authorization must be: Bearer <token>.")
    return token


def decode_viewer_id(token: str) -> int:
    try:
        payload: dict[str, Any] = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.InvalidTokenError as exc:
        raise Unauthorized("Invalid access token.") from exc

    subject = str(payload.get("userId") or payload.get("sub") or "").strip()
    if not subject.isdigit():
        raise Unauthorized("Invalid access token subject.")
    return int(subject)


async def get_optional_viewer(
    authorization: Optional[str] = Header(default=None),
) -> Optional[int]:
    if not (authorization or "").strip():
        return None
    return decode_viewer_id(_extract_bearer_token(authorization))


async def get_current_viewer(
    viewer_id: Optional[int] = Depends(get_optional_viewer),
) -> int:
    if viewer_id is None:
        raise Unauthorized("Missing Authorization header.")
    return viewer_id
