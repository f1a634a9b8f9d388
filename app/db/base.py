"""SQLAlchemy engine construction.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; this module only
builds engines. Callers own the engine they get back (the application keeps
it on ``app.state``); nothing is cached at module level.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or "sqlite+pysqlite:///:memory:"
    )


def build_engine(url: str | None = None) -> Engine:
    """Return a new SQLAlchemy Engine for ``url`` (or the environment's URL).

    For SQLite in-memory URLs, use a StaticPool so every connection sees the
    same database across threads; each call therefore yields a fresh,
    isolated in-memory database.
    """
    resolved_url = url or _db_url()
    kwargs: dict = {"future": True, "pool_pre_ping": True}
    if resolved_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in resolved_url:
            kwargs["poolclass"] = StaticPool
    engine = create_engine(resolved_url, **kwargs)
    logger.info("db engine built dialect=%s", engine.dialect.name)
    return engine


__all__ = ["build_engine"]
