"""
Auth persistence helpers.
"""

from __future__ import annotations

from core import db


async def get_user_by_id(user_id: int) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, email, is_active, created_at
        FROM users
        WHERE id = $1
        """,
        user_id,
    )
