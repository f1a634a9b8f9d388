"""JSON envelope helpers and global exception handlers.

Every response body has the shape
``{success, message, data?, errors?, timestamp}``; the handlers here turn
domain errors, store conflicts and framework errors into that shape with the
status from ``app.http.error_mapping``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.http.error_mapping import message_for, status_for
from app.logic.errors import ContentError

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def success_response(
    data: Any = None,
    message: str = "Fetched successfully",
    status_code: int = 200,
    **extra: Any,
) -> JSONResponse:
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    body["timestamp"] = _timestamp()
    return JSONResponse(jsonable_encoder(body), status_code=status_code)


def error_response(
    message: str, status_code: int = 500, errors: Optional[Any] = None
) -> JSONResponse:
    body = {
        "success": False,
        "message": message,
        "errors": errors,
        "timestamp": _timestamp(),
    }
    return JSONResponse(jsonable_encoder(body), status_code=status_code)


async def handle_content_error(request: Request, exc: ContentError) -> JSONResponse:  # noqa: D401
    status_code = status_for(exc.kind)
    if status_code >= 500:
        logger.error(
            "request failed kind=%s path=%s", exc.kind, request.url.path, exc_info=exc
        )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    resp = error_response(exc.message or message_for(exc.kind), status_code, exc.details or None)
    if headers:
        resp.headers.update(headers)
    return resp


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:  # noqa: D401
    logger.warning("integrity conflict path=%s: %s", request.url.path, exc.orig)
    return error_response(message_for("integrity_error"), status_for("integrity_error"))


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)
    message = detail if isinstance(detail, str) and detail else "Request failed"
    return error_response(message, status_code)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    errors = [
        {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg", "")}
        for e in exc.errors()
    ]
    return error_response(message_for("validation_error"), status_for("validation_error"), errors)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return error_response(message_for("internal_error"), status_for("internal_error"))


__all__ = [
    "success_response",
    "error_response",
    "handle_content_error",
    "handle_integrity_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
