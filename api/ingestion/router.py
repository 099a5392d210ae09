"""
FastAPI router for CSV ingestion and dataset endpoints.
"""

from __future__ import annotations

from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from auth import dependencies as auth_dependencies
from core.errors import NotFoundError

from . import repository
from . import schemas
from . import service
from .parsing import format_line

router = APIRouter()


async def _owned_dataset(dataset_id: UUID, current_user: dict) -> dict:
    dataset = await repository.get_dataset(str(dataset_id), user_id=int(current_user["id"]))
    if dataset is None:
        raise NotFoundError("Dataset not found.", status_code=404)
    return dataset


@router.post("/process-csv")
async def process_csv(
    payload: schemas.ProcessCsvRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    """
    Parse an uploaded CSV file from storage and persist it as a dataset.
    """
    run = await service.ingest(
        user_id=int(current_user["id"]),
        dataset_name=payload.dataset_name,
        file_path=payload.file_path,
    )
    result = run.result()
    return {"success": True, "dataset": result.to_payload()}


@router.get("/datasets")
async def list_datasets(
    current_user: dict = Depends(auth_dependencies.get_current_user),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> dict:
    datasets = await repository.list_datasets(
        user_id=int(current_user["id"]),
        limit=limit,
        offset=offset,
    )
    return {
        "datasets": [schemas.DatasetResponse(**d).model_dump() for d in datasets],
        "limit": limit,
        "offset": offset,
        "count": len(datasets),
    }


@router.get("/datasets/{dataset_id}/rows")
async def dataset_rows(
    dataset_id: UUID,
    current_user: dict = Depends(auth_dependencies.get_current_user),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> dict:
    """
    Rows of a dataset in file order.
    """
    dataset = await _owned_dataset(dataset_id, current_user)
    rows = await repository.fetch_rows(dataset["id"], limit=limit, offset=offset)
    return {
        "dataset_id": dataset["id"],
        "columns": dataset["columns"],
        "rows": [schemas.DataRowResponse(**r).model_dump() for r in rows],
        "limit": limit,
        "offset": offset,
        "count": len(rows),
    }


@router.get("/datasets/{dataset_id}/export", response_class=PlainTextResponse)
async def export_dataset(
    dataset_id: UUID,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> PlainTextResponse:
    """
    Re-serialize a stored dataset as CSV text (header line first).
    """
    dataset = await _owned_dataset(dataset_id, current_user)
    columns = dataset["columns"]
    rows = await repository.fetch_rows(dataset["id"], limit=None)

    lines = [format_line(columns)]
    lines.extend(format_line([r["row_data"].get(c, "") for c in columns]) for r in rows)
    return PlainTextResponse(
        "\n".join(lines) + "\n",
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(dataset['filename'])}"
        },
    )


@router.delete("/datasets/{dataset_id}")
async def delete_dataset(
    dataset_id: UUID,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    deleted = await repository.delete_dataset(str(dataset_id), user_id=int(current_user["id"]))
    if not deleted:
        raise NotFoundError("Dataset not found.", status_code=404)
    return {"ok": True, "dataset_id": str(dataset_id)}
