"""Central error mapping for the JSON envelope handlers.

Single source of truth for mapping error kinds to HTTP statuses and default
messages. Handlers must import from here instead of hardcoding numbers.
"""

from __future__ import annotations

ERROR_MAP = {
    "invalid_input": {"status": 400, "message": "Invalid request"},
    "validation_error": {"status": 400, "message": "Validation failed"},
    # Siblings from different parents are a malformed request, not a state conflict
    "conflict_scope": {"status": 400, "message": "Items belong to different parents"},
    "unauthorized": {"status": 401, "message": "Unauthorized. Please login."},
    "forbidden": {"status": 403, "message": "You don't have permission to perform this action"},
    "not_found": {"status": 404, "message": "Resource not found"},
    "method_not_allowed": {"status": 405, "message": "Method not allowed"},
    "integrity_error": {"status": 409, "message": "A record with the same values already exists"},
    "partial_cascade_failure": {"status": 500, "message": "Status cascade did not complete"},
    "partial_reorder_failure": {"status": 500, "message": "Reorder did not complete"},
    "partial_delete_failure": {"status": 500, "message": "Delete did not complete"},
    "store_failure": {"status": 500, "message": "Store operation failed"},
    "internal_error": {"status": 500, "message": "Something went wrong"},
}


def status_for(kind: str) -> int:
    return int(ERROR_MAP.get(kind, ERROR_MAP["internal_error"])["status"])


def message_for(kind: str) -> str:
    return str(ERROR_MAP.get(kind, ERROR_MAP["internal_error"])["message"])


__all__ = ["ERROR_MAP", "status_for", "message_for"]
