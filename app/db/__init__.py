"""Database bootstrap utilities for the exam content service.

This module exposes convenience imports for engine construction and a
migrations runner that applies SQL files from the local migrations/
directory. The DB layer is intentionally minimal and does not leak ORM models
into route handlers.
"""

from app.db.base import build_engine
from app.db.migrations_runner import apply_migrations

__all__ = [
    "build_engine",
    "apply_migrations",
]
