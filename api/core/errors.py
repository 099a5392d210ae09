"""
Error types shared by every feature package.

Each error carries a machine `kind` and the HTTP status the API answers with.
`main.py` renders them as `{"error": <message>, "kind": <kind>}`.
"""

from __future__ import annotations


class ServiceError(RuntimeError):
    kind = "error"
    status_code = 400

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, str]:
        return {"error": str(self), "kind": self.kind}


class AuthError(ServiceError):
    kind = "auth"
    status_code = 401


class NotFoundError(ServiceError):
    kind = "not_found"


class StorageError(ServiceError):
    kind = "storage"


class EmptyInputError(ServiceError):
    kind = "empty_input"


class IngestError(ServiceError):
    kind = "invalid_input"


class PersistenceError(ServiceError):
    kind = "persistence"
