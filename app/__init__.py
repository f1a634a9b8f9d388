"""FastAPI application package for the exam content service.

This package exposes the application factory. It wires only cross-cutting
middleware (request-id and CORS) and mounts the API routers. Business logic
lives in `app/logic/` and route handlers in `app/routes/`.
"""

from __future__ import annotations

from app.main import create_app

__all__ = ["create_app"]
