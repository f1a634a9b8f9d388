"""CORS configuration helpers.

Provides a small utility for applying CORS with the headers browsers need
to read from API responses.
"""

from __future__ import annotations

from typing import Iterable
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


EXPOSE_HEADERS: list[str] = [
    "X-Request-Id",
]


def apply_cors(app: FastAPI, *, origins: Iterable[str] | None = None) -> None:
    allow = list(origins or ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow,
        # Browsers reject credentialed requests against a wildcard origin
        allow_credentials="*" not in allow,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=EXPOSE_HEADERS,
    )


__all__ = ["apply_cors", "EXPOSE_HEADERS"]
