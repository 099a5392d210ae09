"""
Object storage HTTP client.

Uploaded CSV files are stored by the frontend in a bucket; the API only reads
them back. Used endpoint:
- GET {STORAGE_URL}/object/{bucket}/{path}  -> raw file bytes
"""

from __future__ import annotations

import logging
import os
from urllib.parse import quote

import httpx

from core.errors import NotFoundError, StorageError

DEFAULT_STORAGE_URL = "http://storage:5000/storage/v1"
DEFAULT_BUCKET = "csv-files"
DEFAULT_TIMEOUT_S = 30.0

logger = logging.getLogger(__name__)


def storage_url() -> str:
    return os.environ.get("STORAGE_URL", DEFAULT_STORAGE_URL).strip() or DEFAULT_STORAGE_URL


def storage_bucket() -> str:
    return os.environ.get("STORAGE_BUCKET", DEFAULT_BUCKET).strip() or DEFAULT_BUCKET


def storage_service_key() -> str:
    return os.environ.get("STORAGE_SERVICE_KEY", "").strip()


def storage_timeout_s() -> float:
    raw = os.environ.get("STORAGE_TIMEOUT_S", "").strip()
    if not raw:
        return DEFAULT_TIMEOUT_S
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_S


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise StorageError("STORAGE_URL is empty.")
    return base_url.rstrip("/")


def _object_path(bucket: str, path: str) -> str:
    # Keep "/" so nested object keys (user_id/filename.csv) stay nested.
    return f"/object/{quote(bucket, safe='')}/{quote(path.lstrip('/'), safe='/')}"


async def download_file(
    path: str,
    *,
    base_url: str | None = None,
    bucket: str | None = None,
    timeout_s: float | None = None,
) -> bytes:
    """
    Download one object and return its bytes.
    """
    path = (path or "").strip()
    if not path:
        raise NotFoundError("File path is empty.")

    base_url = _normalize_base_url(base_url or storage_url())
    bucket = bucket or storage_bucket()
    headers: dict[str, str] = {}
    key = storage_service_key()
    if key:
        headers["Authorization"] = f"Bearer {key}"
        headers["apikey"] = key

    try:
        async with httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_s or storage_timeout_s(),
        ) as client:
            resp = await client.get(_object_path(bucket, path), headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("storage_download_failed path=%s error=%s", path, exc)
        raise StorageError(f"Could not reach file storage: {exc}") from exc

    # Some storage gateways answer 400 for unknown keys.
    if resp.status_code in (400, 404):
        raise NotFoundError(f"File not found in storage: {path}")
    if resp.status_code != 200:
        body = resp.text[:500]
        raise StorageError(f"Storage download failed: {resp.status_code} {body}")

    return resp.content
