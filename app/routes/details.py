"""Details side-record endpoints for content tree nodes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from app.guards.capability import require_action
from app.http.envelope import success_response
from app.logic.hierarchy import HIERARCHY
from app.logic.repository_details import delete_details, fetch_or_default, upsert_details
from app.routes.content import CONTENT_PATHS, get_store, resolve_kind


router = APIRouter(tags=["Details"])


@router.get("/{kind}/{entity_id}/details", dependencies=[Depends(require_action("GET"))])
def get_details(kind: str, entity_id: str, request: Request):
    entity_type = resolve_kind(kind, CONTENT_PATHS)
    return success_response(fetch_or_default(get_store(request), entity_type, entity_id))


@router.put("/{kind}/{entity_id}/details", dependencies=[Depends(require_action("PUT"))])
def put_details(kind: str, entity_id: str, request: Request, payload: Any = Body(default=None)):
    entity_type = resolve_kind(kind, CONTENT_PATHS)
    saved = upsert_details(get_store(request), entity_type, entity_id, payload)
    return success_response(saved, f"{HIERARCHY[entity_type].label} details saved successfully")


@router.delete("/{kind}/{entity_id}/details", dependencies=[Depends(require_action("DELETE"))])
def remove_details(kind: str, entity_id: str, request: Request):
    entity_type = resolve_kind(kind, CONTENT_PATHS)
    deleted = delete_details(get_store(request), entity_type, entity_id)
    return success_response(deleted, f"{HIERARCHY[entity_type].label} details deleted successfully")


__all__ = ["router"]
