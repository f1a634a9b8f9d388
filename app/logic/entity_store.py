"""Per-type repositories over the content and practice tables.

``EntityStore`` is the explicit handle the engines and routes receive. It
builds one ``Repository`` per entity type from the hierarchy descriptors when
constructed; nothing in this module keeps a module-level engine.

Rows are returned as plain dicts keyed by camelCase field names (``unitId``,
``orderNumber``). Column names accepted by the write helpers may be given in
either form and are always checked against the descriptor before being
interpolated into SQL.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence
from uuid import uuid4

from sqlalchemy import bindparam
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine

from app.logic.errors import InvalidInput
from app.logic.hierarchy import (
    HIERARCHY,
    REGISTRY_VERSION,
    EntityDescriptor,
    camelize,
    get_descriptor,
)
from app.logic.query_cache import QueryCache
from app.logic.repository_details import DetailsRepository

logger = logging.getLogger(__name__)

_AUDIT_COLUMNS = ("created_at", "updated_at")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Repository:
    """Table access for one entity type."""

    def __init__(self, engine: Engine, descriptor: EntityDescriptor) -> None:
        self.engine = engine
        self.descriptor = descriptor
        self.table = descriptor.table
        self.columns: tuple[str, ...] = ("id",) + tuple(descriptor.columns) + _AUDIT_COLUMNS
        self._by_name: dict[str, str] = {}
        for col in self.columns:
            self._by_name[col] = col
            self._by_name[camelize(col)] = col
        self._select = f"SELECT {', '.join(self.columns)} FROM {self.table}"

    @property
    def entity_type(self) -> str:
        return self.descriptor.entity_type

    def column(self, name: str) -> str:
        try:
            return self._by_name[name]
        except KeyError:
            raise InvalidInput(f"Unknown field for {self.entity_type}: {name}") from None

    def _to_doc(self, row: Any) -> dict[str, Any]:
        return {camelize(k): v for k, v in row._mapping.items()}

    def find_by_id(self, entity_id: str) -> Optional[dict[str, Any]]:
        with self.engine.connect() as conn:
            row = conn.execute(
                sql_text(f"{self._select} WHERE id = :id"), {"id": entity_id}
            ).fetchone()
        return self._to_doc(row) if row else None

    def find_many_by_ids(self, ids: Sequence[str]) -> list[dict[str, Any]]:
        if not ids:
            return []
        stmt = sql_text(f"{self._select} WHERE id IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt, {"ids": list(ids)}).fetchall()
        return [self._to_doc(r) for r in rows]

    def find_where(self, filters: Optional[Mapping[str, Any]] = None) -> list[dict[str, Any]]:
        """Return rows matching every equality filter, in sibling order."""
        clauses: list[str] = []
        params: dict[str, Any] = {}
        for i, (name, value) in enumerate((filters or {}).items()):
            col = self.column(name)
            clauses.append(f"{col} = :f{i}")
            params[f"f{i}"] = value
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = f"{self._select}{where} ORDER BY order_number ASC, created_at ASC, id ASC"
        with self.engine.connect() as conn:
            rows = conn.execute(sql_text(sql), params).fetchall()
        return [self._to_doc(r) for r in rows]

    def find_by_parent(
        self, field: str, parent_id: str, status: Optional[str] = None
    ) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {field: parent_id}
        if status is not None:
            filters["status"] = status
        return self.find_where(filters)

    def find_ids_by_parent(self, field: str, parent_ids: Sequence[str]) -> list[str]:
        # An empty IN list would match nothing on some backends and fail on others
        if not parent_ids:
            return []
        col = self.column(field)
        stmt = sql_text(f"SELECT id FROM {self.table} WHERE {col} IN :pids").bindparams(
            bindparam("pids", expanding=True)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt, {"pids": list(parent_ids)}).fetchall()
        return [str(r[0]) for r in rows]

    def bulk_update_by_filter(
        self, field: str, ids: Sequence[str], values: Mapping[str, Any]
    ) -> int:
        """Set ``values`` on every row whose ``field`` is in ``ids``.

        Returns the number of rows that actually changed; rows already holding
        the requested values are left untouched.
        """
        if not ids or not values:
            return 0
        col = self.column(field)
        sets, changed, params = self._assignments(values)
        params["ids"] = list(ids)
        stmt = sql_text(
            f"UPDATE {self.table} SET {sets} WHERE {col} IN :ids AND ({changed})"
        ).bindparams(bindparam("ids", expanding=True))
        with self.engine.begin() as conn:
            res = conn.execute(stmt, params)
        return int(res.rowcount or 0)

    def update_by_id(self, entity_id: str, values: Mapping[str, Any]) -> Optional[dict[str, Any]]:
        """Apply ``values`` to one row and return it, or None when it does not exist."""
        if not values:
            return self.find_by_id(entity_id)
        sets, _changed, params = self._assignments(values)
        params["id"] = entity_id
        with self.engine.begin() as conn:
            res = conn.execute(
                sql_text(f"UPDATE {self.table} SET {sets} WHERE id = :id"), params
            )
            if not res.rowcount:
                return None
            row = conn.execute(
                sql_text(f"{self._select} WHERE id = :id"), {"id": entity_id}
            ).fetchone()
        return self._to_doc(row) if row else None

    def bulk_write_order_numbers(self, pairs: Iterable[tuple[str, int]]) -> int:
        """Write ``order_number`` for each (id, order) pair in one transaction."""
        now = utc_now()
        modified = 0
        stmt = sql_text(
            f"UPDATE {self.table} SET order_number = :ord, updated_at = :now "
            "WHERE id = :id AND (order_number <> :ord OR order_number IS NULL)"
        )
        with self.engine.begin() as conn:
            for entity_id, order in pairs:
                res = conn.execute(stmt, {"ord": int(order), "now": now, "id": entity_id})
                modified += int(res.rowcount or 0)
        return modified

    def delete_by_id(self, entity_id: str) -> int:
        with self.engine.begin() as conn:
            res = conn.execute(sql_text(f"DELETE FROM {self.table} WHERE id = :id"), {"id": entity_id})
        return int(res.rowcount or 0)

    def delete_by_filter(self, field: str, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        col = self.column(field)
        stmt = sql_text(f"DELETE FROM {self.table} WHERE {col} IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )
        with self.engine.begin() as conn:
            res = conn.execute(stmt, {"ids": list(ids)})
        return int(res.rowcount or 0)

    def insert(self, values: Mapping[str, Any]) -> dict[str, Any]:
        row: dict[str, Any] = {}
        for name, value in values.items():
            col = self.column(name)
            if col in _AUDIT_COLUMNS:
                continue
            row[col] = value
        missing = [camelize(c) for c in self.descriptor.required if row.get(c) in (None, "")]
        if missing:
            raise InvalidInput(
                f"{self.descriptor.label} is missing required fields",
                details={"missing": missing},
            )
        row["id"] = str(row.get("id") or uuid4().hex)
        now = utc_now()
        row["created_at"] = now
        row["updated_at"] = now
        cols = list(row)
        sql = (
            f"INSERT INTO {self.table} ({', '.join(cols)}) "
            f"VALUES ({', '.join(':' + c for c in cols)})"
        )
        with self.engine.begin() as conn:
            conn.execute(sql_text(sql), row)
            created = conn.execute(
                sql_text(f"{self._select} WHERE id = :id"), {"id": row["id"]}
            ).fetchone()
        logger.info("inserted %s id=%s", self.entity_type, row["id"])
        return self._to_doc(created)

    def _assignments(self, values: Mapping[str, Any]) -> tuple[str, str, dict[str, Any]]:
        sets: list[str] = []
        changed: list[str] = []
        params: dict[str, Any] = {}
        for i, (name, value) in enumerate(values.items()):
            col = self.column(name)
            if col in ("id",) + _AUDIT_COLUMNS:
                raise InvalidInput(f"Field cannot be written: {name}")
            sets.append(f"{col} = :v{i}")
            changed.append(f"{col} <> :v{i} OR {col} IS NULL")
            params[f"v{i}"] = value
        sets.append("updated_at = :updated_at")
        params["updated_at"] = utc_now()
        return ", ".join(sets), " OR ".join(changed), params


class EntityStore:
    """Explicit handle over every repository; built once per application."""

    registry_version = REGISTRY_VERSION

    def __init__(self, engine: Engine, cache: Optional[QueryCache] = None) -> None:
        self.engine = engine
        self.cache = cache if cache is not None else QueryCache()
        self._repositories = {t: Repository(engine, d) for t, d in HIERARCHY.items()}
        self._details = {
            t: DetailsRepository(engine, d.details)
            for t, d in HIERARCHY.items()
            if d.details is not None
        }

    def repository(self, entity_type: str) -> Repository:
        get_descriptor(entity_type)
        return self._repositories[entity_type]

    def details(self, entity_type: str) -> DetailsRepository:
        desc = get_descriptor(entity_type)
        if entity_type not in self._details:
            raise InvalidInput(f"{desc.label} has no details record")
        return self._details[entity_type]

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(sql_text("SELECT 1"))
        return True


def list_entities(
    store: EntityStore,
    entity_type: str,
    parent_id: Optional[str] = None,
    status: Optional[str] = None,
) -> list[dict[str, Any]]:
    """List rows of one type, optionally under a parent; served from the cache when fresh."""
    repo = store.repository(entity_type)
    key = (parent_id, status)
    cached = store.cache.get(entity_type, key)
    if cached is not None:
        return cached
    filters: dict[str, Any] = {}
    if parent_id is not None:
        if repo.descriptor.parent_field is None:
            raise InvalidInput(f"{repo.descriptor.label} has no parent")
        filters[repo.descriptor.parent_field] = parent_id
    if status is not None:
        filters["status"] = status
    rows = repo.find_where(filters)
    store.cache.set(entity_type, key, rows)
    return rows


__all__ = ["utc_now", "Repository", "EntityStore", "list_entities"]
