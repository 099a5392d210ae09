"""
Batched row persistence.

Rows are written in fixed-size batches, one batch at a time and in
`row_number` order. The first failing batch stops the loop; batches that were
already written stay written.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Iterator, Sequence, TypeVar

from .parsing import Row

DEFAULT_BATCH_SIZE = 100

T = TypeVar("T")

InsertBatch = Callable[[str, list[Row]], Awaitable[None]]

logger = logging.getLogger(__name__)


def batched(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """
    Yield consecutive lists of at most `size` items, preserving order.
    """
    if size <= 0:
        raise ValueError("batch size must be > 0")

    batch: list[T] = []
    for item in items:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


async def persist_rows(
    dataset_id: str,
    rows: Sequence[Row],
    insert_batch: InsertBatch,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """
    Write `rows` through `insert_batch` and return how many were written.
    """
    ordered = sorted(rows, key=lambda r: r.row_number)
    written = 0
    for i, batch in enumerate(batched(ordered, batch_size)):
        await insert_batch(dataset_id, batch)
        written += len(batch)
        logger.debug(
            "row_batch_inserted dataset_id=%s batch=%s size=%s total=%s",
            dataset_id,
            i + 1,
            len(batch),
            written,
        )
    return written
