"""
Request authentication: access token -> user row.
"""

from __future__ import annotations

from core.errors import AuthError

from . import repository, security


async def get_user_from_access_token(access_token: str) -> dict:
    payload = security.decode_access_token(access_token)

    subject = str(payload.get("sub") or "").strip()
    if not subject.isdigit():
        raise AuthError("Invalid access token subject.")

    user_row = await repository.get_user_by_id(int(subject))
    if user_row is None:
        raise AuthError("User not found.")
    if not bool(user_row.get("is_active", False)):
        raise AuthError("User is inactive.", status_code=403)
    return user_row
