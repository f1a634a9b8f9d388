"""Details side-records: one SEO/content record per content node.

The record is keyed by a unique owner column, so writes are a single upsert
and never create a second row for the same owner.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence
from uuid import uuid4

from sqlalchemy import bindparam
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine

from app.logic.errors import InvalidInput, NotFound
from app.logic.hierarchy import camelize

if TYPE_CHECKING:
    from app.logic.entity_store import EntityStore
    from app.logic.hierarchy import DetailsTable

logger = logging.getLogger(__name__)

DETAIL_FIELDS = ("content", "title", "meta_description", "keywords", "status")
_TRIMMED = ("title", "meta_description", "keywords")
_API_NAMES = {
    "content": "content",
    "title": "title",
    "metaDescription": "meta_description",
    "keywords": "keywords",
    "status": "status",
}


class DetailsRepository:
    def __init__(self, engine: Engine, table: "DetailsTable") -> None:
        self.engine = engine
        self.table = table.table
        self.owner_field = table.owner_field
        self._select = (
            f"SELECT id, {self.owner_field}, {', '.join(DETAIL_FIELDS)}, created_at, updated_at "
            f"FROM {self.table}"
        )

    def _to_doc(self, row: Any) -> dict[str, Any]:
        m = row._mapping
        return {
            "id": m["id"],
            camelize(self.owner_field): m[self.owner_field],
            "content": m["content"],
            "title": m["title"],
            "metaDescription": m["meta_description"],
            "keywords": m["keywords"],
            "status": m["status"],
            "createdAt": m["created_at"],
            "updatedAt": m["updated_at"],
        }

    def find_by_owner(self, owner_id: str) -> Optional[dict[str, Any]]:
        with self.engine.connect() as conn:
            row = conn.execute(
                sql_text(f"{self._select} WHERE {self.owner_field} = :oid"), {"oid": owner_id}
            ).fetchone()
        return self._to_doc(row) if row else None

    def upsert(self, owner_id: str, values: Mapping[str, str]) -> dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        params = {k: values[k] for k in DETAIL_FIELDS}
        params.update({"id": uuid4().hex, "oid": owner_id, "now": now})
        assignments = ", ".join(f"{k} = excluded.{k}" for k in DETAIL_FIELDS)
        sql = (
            f"INSERT INTO {self.table} (id, {self.owner_field}, {', '.join(DETAIL_FIELDS)}, created_at, updated_at) "
            f"VALUES (:id, :oid, {', '.join(':' + k for k in DETAIL_FIELDS)}, :now, :now) "
            f"ON CONFLICT ({self.owner_field}) DO UPDATE SET {assignments}, updated_at = excluded.updated_at"
        )
        with self.engine.begin() as conn:
            conn.execute(sql_text(sql), params)
            row = conn.execute(
                sql_text(f"{self._select} WHERE {self.owner_field} = :oid"), {"oid": owner_id}
            ).fetchone()
        return self._to_doc(row)

    def delete_by_owner(self, owner_id: str) -> Optional[dict[str, Any]]:
        with self.engine.begin() as conn:
            row = conn.execute(
                sql_text(f"{self._select} WHERE {self.owner_field} = :oid"), {"oid": owner_id}
            ).fetchone()
            if row is None:
                return None
            conn.execute(
                sql_text(f"DELETE FROM {self.table} WHERE {self.owner_field} = :oid"),
                {"oid": owner_id},
            )
        return self._to_doc(row)

    def delete_by_owners(self, owner_ids: Sequence[str]) -> int:
        if not owner_ids:
            return 0
        stmt = sql_text(
            f"DELETE FROM {self.table} WHERE {self.owner_field} IN :oids"
        ).bindparams(bindparam("oids", expanding=True))
        with self.engine.begin() as conn:
            res = conn.execute(stmt, {"oids": list(owner_ids)})
        return int(res.rowcount or 0)


def _require_owner(store: "EntityStore", owner_type: str, owner_id: str) -> None:
    repo = store.repository(owner_type)
    if repo.find_by_id(owner_id) is None:
        raise NotFound(f"{repo.descriptor.label} not found")


def default_details(owner_field: str, owner_id: str) -> dict[str, Any]:
    return {
        camelize(owner_field): owner_id,
        "content": "",
        "title": "",
        "metaDescription": "",
        "keywords": "",
        "status": "draft",
    }


def fetch_or_default(store: "EntityStore", owner_type: str, owner_id: str) -> dict[str, Any]:
    details = store.details(owner_type)
    _require_owner(store, owner_type, owner_id)
    found = details.find_by_owner(owner_id)
    return found if found is not None else default_details(details.owner_field, owner_id)


def upsert_details(
    store: "EntityStore", owner_type: str, owner_id: str, payload: Any
) -> dict[str, Any]:
    """Create or replace the details record of one owner.

    Missing fields reset to their empty defaults, so a PUT always describes
    the whole record.
    """
    details = store.details(owner_type)
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise InvalidInput("Details payload must be an object")
    values: dict[str, str] = {}
    for api_name, col in _API_NAMES.items():
        raw = payload.get(api_name)
        if raw is not None and not isinstance(raw, str):
            raise InvalidInput(f"{api_name} must be a string")
        value = raw or ""
        if col in _TRIMMED:
            value = value.strip()
        values[col] = value
    values["status"] = values["status"] or "draft"
    _require_owner(store, owner_type, owner_id)
    saved = details.upsert(owner_id, values)
    logger.info("details saved owner_type=%s owner_id=%s", owner_type, owner_id)
    return saved


def delete_details(store: "EntityStore", owner_type: str, owner_id: str) -> dict[str, Any]:
    details = store.details(owner_type)
    deleted = details.delete_by_owner(owner_id)
    if deleted is None:
        label = store.repository(owner_type).descriptor.label
        raise NotFound(f"{label} details not found")
    return deleted


__all__ = [
    "DETAIL_FIELDS",
    "DetailsRepository",
    "default_details",
    "fetch_or_default",
    "upsert_details",
    "delete_details",
]
