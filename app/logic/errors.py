"""Domain error kinds raised by the engines and the capability gate.

Each kind carries a stable ``kind`` string; the HTTP layer maps it to a
status code through ``app.http.error_mapping``.
"""

from __future__ import annotations

from typing import Any, Optional


class ContentError(Exception):
    kind = "content_error"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInput(ContentError):
    kind = "invalid_input"


class NotFound(ContentError):
    kind = "not_found"


class ConflictScope(ContentError):
    kind = "conflict_scope"


class PartialCascadeFailure(ContentError):
    """A descendant generation failed after earlier generations committed.

    ``completed`` holds the ``GenerationCount`` entries already written.
    """

    kind = "partial_cascade_failure"

    def __init__(self, message: str, *, completed: list, failed_type: str) -> None:
        super().__init__(message, details={"failedType": failed_type})
        self.completed = list(completed)
        self.failed_type = failed_type


class PartialReorderFailure(ContentError):
    """Phase 2 of a reorder failed; rows keep their temporary order numbers."""

    kind = "partial_reorder_failure"

    def __init__(self, message: str, *, entity_type: str, ids: list[str]) -> None:
        super().__init__(message, details={"entityType": entity_type})
        self.entity_type = entity_type
        self.ids = list(ids)


class PartialDeleteFailure(ContentError):
    kind = "partial_delete_failure"

    def __init__(self, message: str, *, deleted: dict[str, int]) -> None:
        super().__init__(message, details={"deleted": dict(deleted)})
        self.deleted = dict(deleted)


class StoreFailure(ContentError):
    """The store rejected a write before anything was committed."""

    kind = "store_failure"


class Unauthorized(ContentError):
    kind = "unauthorized"


class Forbidden(ContentError):
    kind = "forbidden"


__all__ = [
    "ContentError",
    "InvalidInput",
    "NotFound",
    "ConflictScope",
    "PartialCascadeFailure",
    "PartialReorderFailure",
    "PartialDeleteFailure",
    "StoreFailure",
    "Unauthorized",
    "Forbidden",
]
