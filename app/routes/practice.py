"""Practice test endpoints: category, subcategory, question.

Mounted under ``/practice`` and registered ahead of the content router so
``/practice/{kind}`` is never read as a content ``/{kind}/{id}`` path.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from app.guards.capability import require_action
from app.logic.hierarchy import EntityType
from app.routes.content import (
    change_status,
    create,
    fetch_one,
    get_store,
    list_many,
    remove,
    reorder,
    resolve_kind,
    update,
)


router = APIRouter(prefix="/practice", tags=["Practice"])

PRACTICE_PATHS: dict[str, str] = {
    "category": EntityType.PRACTICE_CATEGORY,
    "subcategory": EntityType.PRACTICE_SUB_CATEGORY,
    "question": EntityType.PRACTICE_QUESTION,
}


@router.patch("/{kind}/reorder", dependencies=[Depends(require_action("PATCH"))])
@router.post("/{kind}/reorder", dependencies=[Depends(require_action("PATCH"))], include_in_schema=False)
def reorder_practice(kind: str, request: Request, payload: Any = Body(default=None)):
    return reorder(get_store(request), resolve_kind(kind, PRACTICE_PATHS), payload)


@router.patch("/{kind}/{entity_id}/status", dependencies=[Depends(require_action("PATCH"))])
def change_practice_status(kind: str, entity_id: str, request: Request, payload: Any = Body(default=None)):
    return change_status(get_store(request), resolve_kind(kind, PRACTICE_PATHS), entity_id, payload)


@router.get("/{kind}", dependencies=[Depends(require_action("GET"))])
def list_practice(
    kind: str,
    request: Request,
    parent_id: Optional[str] = Query(default=None, alias="parentId"),
    status: Optional[str] = Query(default=None),
):
    return list_many(get_store(request), resolve_kind(kind, PRACTICE_PATHS), parent_id, status)


@router.post("/{kind}", dependencies=[Depends(require_action("POST"))])
def create_practice(kind: str, request: Request, payload: Any = Body(default=None)):
    return create(get_store(request), resolve_kind(kind, PRACTICE_PATHS), payload)


@router.get("/{kind}/{entity_id}", dependencies=[Depends(require_action("GET"))])
def get_practice(kind: str, entity_id: str, request: Request):
    return fetch_one(get_store(request), resolve_kind(kind, PRACTICE_PATHS), entity_id)


@router.put("/{kind}/{entity_id}", dependencies=[Depends(require_action("PUT"))])
def update_practice(kind: str, entity_id: str, request: Request, payload: Any = Body(default=None)):
    return update(get_store(request), resolve_kind(kind, PRACTICE_PATHS), entity_id, payload)


@router.delete("/{kind}/{entity_id}", dependencies=[Depends(require_action("DELETE"))])
def delete_practice(kind: str, entity_id: str, request: Request):
    return remove(get_store(request), resolve_kind(kind, PRACTICE_PATHS), entity_id)


__all__ = ["router", "PRACTICE_PATHS"]
