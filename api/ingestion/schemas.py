"""
Ingestion API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProcessCsvRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dataset_name: str = Field(..., alias="datasetName", min_length=1, max_length=255)
    file_path: str = Field(..., alias="filePath", min_length=1, max_length=1024)


class DatasetResponse(BaseModel):
    id: str
    name: str
    filename: str
    file_path: str
    columns: list[str]
    row_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DataRowResponse(BaseModel):
    row_number: int
    row_data: dict[str, str]
