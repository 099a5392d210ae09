"""
Ingestion "service layer".

This file contains logic that is independent of FastAPI's routing layer.
One call to `ingest()` walks a fixed chain of stages:

    idle -> downloading -> parsing -> creating_dataset -> inserting_rows -> done

Any stage raising moves the run straight to `failed` with the error kept on
the run; later stages never execute. Nothing is retried here.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from core import storage
from core.errors import EmptyInputError, IngestError, ServiceError

from . import batching, repository
from .parsing import ParsedCsv, parse_csv

DEFAULT_MAX_CSV_BYTES = 10 * 1024 * 1024  # 10 MiB
DEFAULT_FILENAME = "unknown.csv"

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def row_batch_size() -> int:
    return _env_int("ROW_BATCH_SIZE", batching.DEFAULT_BATCH_SIZE)


def max_csv_bytes() -> int:
    return _env_int("MAX_CSV_BYTES", DEFAULT_MAX_CSV_BYTES)


class IngestState(str, Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    PARSING = "parsing"
    CREATING_DATASET = "creating_dataset"
    INSERTING_ROWS = "inserting_rows"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class IngestResult:
    dataset_id: str
    name: str
    columns: list[str]
    row_count: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.dataset_id,
            "name": self.name,
            "columns": self.columns,
            "rowCount": self.row_count,
        }


@dataclass
class Ingestion:
    """
    State of one ingestion run. Owned by a single request.
    """

    user_id: int
    dataset_name: str
    file_path: str
    state: IngestState = IngestState.IDLE
    history: list[IngestState] = field(default_factory=lambda: [IngestState.IDLE])
    error: Exception | None = None
    data: bytes | None = None
    parsed: ParsedCsv | None = None
    dataset: dict[str, Any] | None = None

    @property
    def filename(self) -> str:
        return self.file_path.split("/")[-1] or DEFAULT_FILENAME

    def advance(self, state: IngestState) -> None:
        if self.state in (IngestState.DONE, IngestState.FAILED):
            raise RuntimeError(f"Ingestion already finished in state {self.state.value}.")
        self.state = state
        self.history.append(state)

    def fail(self, error: Exception) -> None:
        self.error = error
        self.state = IngestState.FAILED
        self.history.append(IngestState.FAILED)

    def result(self) -> IngestResult:
        if self.error is not None:
            raise self.error
        if self.state is not IngestState.DONE or self.dataset is None or self.parsed is None:
            raise RuntimeError(f"Ingestion has not finished (state {self.state.value}).")
        return IngestResult(
            dataset_id=str(self.dataset["id"]),
            name=str(self.dataset.get("name") or self.dataset_name),
            columns=list(self.parsed.headers),
            row_count=self.parsed.row_count,
        )


def decode_csv(data: bytes) -> str:
    """
    Decode uploaded bytes as UTF-8, dropping a leading BOM.
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise IngestError("CSV file is not valid UTF-8.") from exc


async def _download(run: Ingestion) -> None:
    data = await storage.download_file(run.file_path)
    if not data:
        raise EmptyInputError("File is empty or could not be downloaded.")
    limit = max_csv_bytes()
    if len(data) > limit:
        raise IngestError(f"File too large. Max is {limit} bytes.")
    run.data = data


async def _parse(run: Ingestion) -> None:
    text = decode_csv(run.data or b"")
    run.data = None
    run.parsed = parse_csv(text)
    logger.info(
        "csv_parsed file_path=%s columns=%s rows=%s skipped=%s",
        run.file_path,
        len(run.parsed.headers),
        run.parsed.row_count,
        run.parsed.skipped_lines,
    )


async def _create_dataset(run: Ingestion) -> None:
    if run.parsed is None:
        raise RuntimeError("Cannot create a dataset before parsing.")
    run.dataset = await repository.create_dataset(
        user_id=run.user_id,
        name=run.dataset_name,
        filename=run.filename,
        file_path=run.file_path,
        columns=run.parsed.headers,
        row_count=run.parsed.row_count,
    )


async def _insert_rows(run: Ingestion) -> None:
    if run.parsed is None or run.dataset is None:
        raise RuntimeError("Cannot insert rows before the dataset exists.")
    await batching.persist_rows(
        str(run.dataset["id"]),
        run.parsed.rows,
        repository.insert_rows,
        batch_size=row_batch_size(),
    )


_STAGES: tuple[tuple[IngestState, Callable[[Ingestion], Awaitable[None]]], ...] = (
    (IngestState.DOWNLOADING, _download),
    (IngestState.PARSING, _parse),
    (IngestState.CREATING_DATASET, _create_dataset),
    (IngestState.INSERTING_ROWS, _insert_rows),
)


async def ingest(*, user_id: int, dataset_name: str, file_path: str) -> Ingestion:
    """
    Run the full pipeline for one uploaded file.

    Always returns the run; call `.result()` to get the dataset summary or
    re-raise the error that stopped it.
    """
    run = Ingestion(user_id=user_id, dataset_name=dataset_name, file_path=file_path)
    logger.info("ingest_started user_id=%s file_path=%s", user_id, file_path)

    for state, stage in _STAGES:
        run.advance(state)
        try:
            await stage(run)
        except ServiceError as exc:
            run.fail(exc)
            logger.warning(
                "ingest_failed user_id=%s file_path=%s stage=%s kind=%s error=%s",
                user_id,
                file_path,
                state.value,
                exc.kind,
                exc,
            )
            return run
        except Exception as exc:
            run.fail(exc)
            logger.exception(
                "ingest_crashed user_id=%s file_path=%s stage=%s", user_id, file_path, state.value
            )
            return run

    run.advance(IngestState.DONE)
    logger.info(
        "ingest_done dataset_id=%s rows=%s",
        run.dataset["id"] if run.dataset else None,
        run.parsed.row_count if run.parsed else 0,
    )
    return run
