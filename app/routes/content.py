"""Content tree endpoints: exam, subject, unit, chapter, topic, subtopic, definition.

The operation bodies below are shared with the practice router; each takes
the resolved entity type so one implementation serves every level.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from app.guards.capability import require_action
from app.http.envelope import success_response
from app.logic.cascade_delete import delete_entity
from app.logic.entity_store import EntityStore, list_entities
from app.logic.errors import InvalidInput, NotFound
from app.logic.hierarchy import HIERARCHY, EntityType
from app.logic.order_sequences import check_order_number, items_from_body, reorder_siblings
from app.logic.status_cascade import CASCADE_STATUSES, cascade_status


router = APIRouter()
logger = logging.getLogger(__name__)

CONTENT_PATHS: dict[str, str] = {
    "exam": EntityType.EXAM,
    "subject": EntityType.SUBJECT,
    "unit": EntityType.UNIT,
    "chapter": EntityType.CHAPTER,
    "topic": EntityType.TOPIC,
    "subtopic": EntityType.SUB_TOPIC,
    "definition": EntityType.DEFINITION,
}


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def resolve_kind(kind: str, paths: Mapping[str, str]) -> str:
    try:
        return paths[kind]
    except KeyError:
        raise NotFound(f"Unknown resource: {kind}") from None


def _as_object(payload: Any) -> dict[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise InvalidInput("Request body must be a JSON object")
    return dict(payload)


def _check_status_value(entity_type: str, values: Mapping[str, Any]) -> None:
    if "status" not in values:
        return
    allowed = CASCADE_STATUSES + (("draft",) if entity_type == EntityType.EXAM else ())
    if values["status"] not in allowed:
        raise InvalidInput(f"status must be one of {', '.join(allowed)}")


def change_status(store: EntityStore, entity_type: str, entity_id: str, payload: Any):
    body = _as_object(payload)
    status = body.get("status")
    result = cascade_status(store, entity_type, entity_id, status)
    verb = "deactivated" if status == "inactive" else "activated"
    label = HIERARCHY[entity_type].label
    return success_response(
        result.entity,
        f"{label} and all children {verb} successfully",
        modifiedCount=result.modified_count,
        cascade=result.as_dict()["generations"],
    )


def reorder(store: EntityStore, entity_type: str, payload: Any):
    items = items_from_body(entity_type, payload)
    result = reorder_siblings(store, entity_type, items)
    key = HIERARCHY[entity_type].batch_key
    return success_response(
        None,
        f"{key[:1].upper()}{key[1:]} reordered successfully",
        modifiedCount=result.modified_count,
    )


def fetch_one(store: EntityStore, entity_type: str, entity_id: str):
    doc = store.repository(entity_type).find_by_id(entity_id)
    if doc is None:
        raise NotFound(f"{HIERARCHY[entity_type].label} not found")
    return success_response(doc)


def list_many(
    store: EntityStore, entity_type: str, parent_id: Optional[str], status: Optional[str]
):
    rows = list_entities(store, entity_type, parent_id=parent_id, status=status)
    return success_response(rows, count=len(rows))


def create(store: EntityStore, entity_type: str, payload: Any):
    values = _as_object(payload)
    _check_status_value(entity_type, values)
    check_order_number(values)
    doc = store.repository(entity_type).insert(values)
    store.cache.invalidate(entity_type)
    return success_response(doc, f"{HIERARCHY[entity_type].label} created successfully", status_code=201)


def update(store: EntityStore, entity_type: str, entity_id: str, payload: Any):
    values = _as_object(payload)
    values.pop("id", None)
    if "status" in values:
        raise InvalidInput("Use the status endpoint to change status")
    check_order_number(values)
    doc = store.repository(entity_type).update_by_id(entity_id, values)
    if doc is None:
        raise NotFound(f"{HIERARCHY[entity_type].label} not found")
    store.cache.invalidate(entity_type)
    return success_response(doc, f"{HIERARCHY[entity_type].label} updated successfully")


def remove(store: EntityStore, entity_type: str, entity_id: str):
    result = delete_entity(store, entity_type, entity_id)
    return success_response(
        {"entity": result.entity, "deleted": result.deleted},
        f"{HIERARCHY[entity_type].label} deleted successfully",
        deletedCount=result.deleted_count,
    )


@router.patch("/{kind}/reorder", dependencies=[Depends(require_action("PATCH"))], tags=["Reorder"])
@router.post("/{kind}/reorder", dependencies=[Depends(require_action("PATCH"))], include_in_schema=False)
def reorder_content(kind: str, request: Request, payload: Any = Body(default=None)):
    return reorder(get_store(request), resolve_kind(kind, CONTENT_PATHS), payload)


@router.patch("/{kind}/{entity_id}/status", dependencies=[Depends(require_action("PATCH"))], tags=["Status"])
def change_content_status(kind: str, entity_id: str, request: Request, payload: Any = Body(default=None)):
    return change_status(get_store(request), resolve_kind(kind, CONTENT_PATHS), entity_id, payload)


@router.get("/{kind}", dependencies=[Depends(require_action("GET"))], tags=["Content"])
def list_content(
    kind: str,
    request: Request,
    parent_id: Optional[str] = Query(default=None, alias="parentId"),
    status: Optional[str] = Query(default=None),
):
    return list_many(get_store(request), resolve_kind(kind, CONTENT_PATHS), parent_id, status)


@router.post("/{kind}", dependencies=[Depends(require_action("POST"))], tags=["Content"])
def create_content(kind: str, request: Request, payload: Any = Body(default=None)):
    return create(get_store(request), resolve_kind(kind, CONTENT_PATHS), payload)


@router.get("/{kind}/{entity_id}", dependencies=[Depends(require_action("GET"))], tags=["Content"])
def get_content(kind: str, entity_id: str, request: Request):
    return fetch_one(get_store(request), resolve_kind(kind, CONTENT_PATHS), entity_id)


@router.put("/{kind}/{entity_id}", dependencies=[Depends(require_action("PUT"))], tags=["Content"])
def update_content(kind: str, entity_id: str, request: Request, payload: Any = Body(default=None)):
    return update(get_store(request), resolve_kind(kind, CONTENT_PATHS), entity_id, payload)


@router.delete("/{kind}/{entity_id}", dependencies=[Depends(require_action("DELETE"))], tags=["Content"])
def delete_content(kind: str, entity_id: str, request: Request):
    return remove(get_store(request), resolve_kind(kind, CONTENT_PATHS), entity_id)


__all__ = [
    "router",
    "CONTENT_PATHS",
    "get_store",
    "resolve_kind",
    "change_status",
    "reorder",
    "fetch_one",
    "list_many",
    "create",
    "update",
    "remove",
]
