"""Tests for batched row persistence."""

import pytest

from ingestion.batching import DEFAULT_BATCH_SIZE, batched, persist_rows
from ingestion.parsing import Row


class TestBatched:
    def test_splits_in_order(self):
        assert list(batched(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]

    def test_exact_multiple_has_no_empty_tail(self):
        assert list(batched(range(4), 2)) == [[0, 1], [2, 3]]

    def test_empty_input(self):
        assert list(batched([], 5)) == []

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            list(batched([1], 0))


class TestPersistRows:
    def test_default_batch_size(self):
        assert DEFAULT_BATCH_SIZE == 100

    @pytest.mark.asyncio
    async def test_250_rows_make_three_ordered_batches(self, make_rows, recording_inserter):
        insert = recording_inserter()
        written = await persist_rows("ds-1", make_rows(250), insert)

        assert written == 250
        assert insert.sizes == [100, 100, 50]
        numbers = [r.row_number for _, batch in insert.calls for r in batch]
        assert numbers == list(range(1, 251))
        assert {dataset_id for dataset_id, _ in insert.calls} == {"ds-1"}

    @pytest.mark.asyncio
    async def test_batches_follow_row_number_order(self, recording_inserter):
        rows = [Row(row_number=n, fields={}) for n in (3, 1, 2)]
        insert = recording_inserter()
        await persist_rows("ds-1", rows, insert, batch_size=2)
        assert [[r.row_number for r in b] for _, b in insert.calls] == [[1, 2], [3]]

    @pytest.mark.asyncio
    async def test_failure_stops_remaining_batches(self, make_rows, recording_inserter):
        insert = recording_inserter(fail_on_call=2)

        with pytest.raises(RuntimeError, match="insert failed"):
            await persist_rows("ds-1", make_rows(250), insert)

        assert insert.sizes == [100]

    @pytest.mark.asyncio
    async def test_no_rows_no_calls(self, recording_inserter):
        insert = recording_inserter()
        assert await persist_rows("ds-1", [], insert) == 0
        assert insert.calls == []
