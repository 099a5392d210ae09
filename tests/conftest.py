"""Shared test fixtures."""

import os

import pytest

os.environ.setdefault("JWT_SECRET", "test-secret")

from auth import repository as auth_repository  # noqa: E402
from auth import security  # noqa: E402
from ingestion.parsing import Row  # noqa: E402


@pytest.fixture
def user_row():
    return {"id": 7, "email": "ana@example.com", "is_active": True, "created_at": None}


@pytest.fixture
def known_user(monkeypatch, user_row):
    """Make the auth lookup find `user_row` without a database."""

    async def fake_get_user_by_id(user_id: int):
        return dict(user_row) if user_id == user_row["id"] else None

    monkeypatch.setattr(auth_repository, "get_user_by_id", fake_get_user_by_id)
    return user_row


@pytest.fixture
def auth_headers(known_user):
    token = security.build_access_token(user_id=known_user["id"], email=known_user["email"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_rows():
    def _make(n: int) -> list[Row]:
        return [Row(row_number=i, fields={"id": str(i)}) for i in range(1, n + 1)]

    return _make


class RecordingInserter:
    """Stand-in for the row-insert collaborator that records each batch."""

    def __init__(self, fail_on_call: int | None = None, error: Exception | None = None):
        self.calls: list[tuple[str, list[Row]]] = []
        self.fail_on_call = fail_on_call
        self.error = error or RuntimeError("insert failed")

    async def __call__(self, dataset_id, batch):
        if self.fail_on_call is not None and len(self.calls) + 1 == self.fail_on_call:
            raise self.error
        self.calls.append((dataset_id, list(batch)))

    @property
    def sizes(self) -> list[int]:
        return [len(batch) for _, batch in self.calls]


@pytest.fixture
def recording_inserter():
    return RecordingInserter
