"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the local `migrations/` directory.
Skips rollback files and records applied filenames in a `schema_migrations`
table so the same migration is never applied twice on one database. Intended
for local development and CI; production environments should use Alembic or
the platform's migration mechanism.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

JOURNAL_TABLE = "schema_migrations"


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        # Skip rollback scripts in forward runs
        if "rollback" in p.name.lower():
            continue
        yield p


def split_statements(sql: str) -> list[str]:
    """Split a migration file into single statements.

    pysqlite refuses multi-statement execute() calls, so every dialect gets
    one statement at a time. Comment lines are dropped before splitting.
    """
    body = "\n".join(
        line for line in sql.splitlines() if not line.strip().startswith("--")
    )
    out: list[str] = []
    for stmt in body.split(";"):
        s = stmt.strip()
        if not s or s.upper() in {"BEGIN", "COMMIT", "END"}:
            continue
        out.append(s)
    return out


def _ensure_journal(conn: Connection) -> set[str]:
    conn.execute(
        sql_text(
            f"CREATE TABLE IF NOT EXISTS {JOURNAL_TABLE} ("
            "filename TEXT PRIMARY KEY, applied_at TEXT NOT NULL)"
        )
    )
    rows = conn.execute(sql_text(f"SELECT filename FROM {JOURNAL_TABLE}")).fetchall()
    return {str(r[0]) for r in rows}


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] = "migrations") -> list[str]:
    """Apply pending migrations; return the filenames applied by this call."""
    root = Path(migrations_dir)
    if not root.exists():
        logger.warning("migrations directory missing path=%s", root)
        return []

    applied_now: list[str] = []
    with engine.begin() as conn:
        applied = _ensure_journal(conn)
    for sql_path in _iter_sql_files(root):
        fname = sql_path.name
        if fname in applied:
            continue
        statements = split_statements(sql_path.read_text(encoding="utf-8"))
        # One transaction per file so a broken file leaves earlier ones recorded
        with engine.begin() as conn:
            for stmt in statements:
                conn.exec_driver_sql(stmt)
            conn.execute(
                sql_text(f"INSERT INTO {JOURNAL_TABLE} (filename, applied_at) VALUES (:f, :at)"),
                {
                    "f": fname,
                    # applied_at is ISO-8601 UTC without fractional seconds
                    "at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                },
            )
        applied_now.append(fname)
        logger.info("migration applied file=%s statements=%d", fname, len(statements))
    return applied_now


__all__ = ["JOURNAL_TABLE", "split_statements", "apply_migrations"]
