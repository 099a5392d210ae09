"""
Dataset persistence.
This module is where dataset-related SQL lives.

Schema comes from the dbmate migrations in `db/migrations/`:
- datasets(id uuid, user_id, name, filename, file_path, columns jsonb, row_count, ...)
- data_rows(id bigserial, dataset_id, row_number, row_data jsonb)
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Sequence

import asyncpg

from core import db
from core.errors import PersistenceError

from .parsing import Row

logger = logging.getLogger(__name__)

# Driver, connection and timeout failures all surface as PersistenceError.
_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

_DATASET_COLUMNS = "id, user_id, name, filename, file_path, columns, row_count, created_at, updated_at"


def _json_arg(value: Any) -> str:
    """
    asyncpg does not automatically encode Python objects for json/jsonb parameters.
    We pass JSON as a string and cast to jsonb in SQL.
    """
    return json.dumps(value, ensure_ascii=False)


def _describe(exc: BaseException) -> str:
    # asyncio.TimeoutError has an empty message.
    return str(exc) or type(exc).__name__


def _json_value(value: Any) -> Any:
    # jsonb comes back as text unless a codec is registered on the pool.
    if isinstance(value, str):
        return json.loads(value)
    return value


def _dataset_from_record(row: dict[str, Any]) -> dict[str, Any]:
    columns = _json_value(row.get("columns"))
    return {
        **row,
        "id": str(row["id"]),
        "columns": [c for c in (columns or []) if isinstance(c, str)],
        "row_count": int(row.get("row_count") or 0),
    }


async def create_dataset(
    *,
    user_id: int,
    name: str,
    filename: str,
    file_path: str,
    columns: Sequence[str],
    row_count: int,
) -> dict[str, Any]:
    """
    Insert a dataset record and return it.
    """
    try:
        row = await db.fetch_one(
            f"""
            INSERT INTO datasets (user_id, name, filename, file_path, columns, row_count)
            VALUES ($1, $2, $3, $4, $5::jsonb, $6)
            RETURNING {_DATASET_COLUMNS}
            """,
            user_id,
            name,
            filename,
            file_path,
            _json_arg(list(columns)),
            row_count,
        )
    except _DB_ERRORS as exc:
        logger.warning("dataset_insert_failed user_id=%s error=%s", user_id, exc)
        raise PersistenceError(f"Failed to create dataset: {_describe(exc)}") from exc

    if row is None or "id" not in row:
        raise PersistenceError("Failed to create dataset.")
    return _dataset_from_record(row)


async def insert_rows(dataset_id: str, batch: Sequence[Row]) -> None:
    """
    Insert one batch of rows in a single transaction.
    """
    if not batch:
        return

    records = [(dataset_id, r.row_number, _json_arg(r.fields)) for r in batch]
    try:
        async with db.transaction() as conn:
            await conn.executemany(
                """
                INSERT INTO data_rows (dataset_id, row_number, row_data)
                VALUES ($1::uuid, $2, $3::jsonb)
                """,
                records,
            )
    except _DB_ERRORS as exc:
        logger.warning(
            "row_batch_insert_failed dataset_id=%s first_row=%s error=%s",
            dataset_id,
            batch[0].row_number,
            exc,
        )
        raise PersistenceError(f"Failed to insert rows: {_describe(exc)}") from exc


async def list_datasets(*, user_id: int, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
    """
    List a user's datasets, newest first.
    """
    rows = await db.fetch_all(
        f"""
        SELECT {_DATASET_COLUMNS}
        FROM datasets
        WHERE user_id = $1
        ORDER BY created_at DESC, id DESC
        LIMIT $2
        OFFSET $3
        """,
        user_id,
        limit,
        offset,
    )
    return [_dataset_from_record(r) for r in rows]


async def get_dataset(dataset_id: str, *, user_id: int) -> dict[str, Any] | None:
    row = await db.fetch_one(
        f"""
        SELECT {_DATASET_COLUMNS}
        FROM datasets
        WHERE id = $1::uuid
          AND user_id = $2
        """,
        dataset_id,
        user_id,
    )
    return _dataset_from_record(row) if row is not None else None


async def fetch_rows(dataset_id: str, *, limit: int | None = 100, offset: int = 0) -> list[dict[str, Any]]:
    """
    Rows of a dataset ordered by row_number. `limit=None` returns all of them.
    """
    rows = await db.fetch_all(
        """
        SELECT row_number, row_data
        FROM data_rows
        WHERE dataset_id = $1::uuid
        ORDER BY row_number
        LIMIT $2
        OFFSET $3
        """,
        dataset_id,
        limit,
        offset,
    )
    return [
        {"row_number": int(r["row_number"]), "row_data": _json_value(r["row_data"]) or {}}
        for r in rows
    ]


async def delete_dataset(dataset_id: str, *, user_id: int) -> bool:
    """
    Delete a dataset owned by the given user. Rows go with it (ON DELETE CASCADE).
    """
    row = await db.fetch_one(
        """
        DELETE FROM datasets
        WHERE id = $1::uuid
          AND user_id = $2
        RETURNING id
        """,
        dataset_id,
        user_id,
    )
    return row is not None
