"""APIRouter registration for the exam content service."""

from __future__ import annotations

from fastapi import APIRouter

from app.routes.content import router as content_router
from app.routes.details import router as details_router
from app.routes.practice import router as practice_router

api_router = APIRouter()
# Order matters: the content router's /{kind}/{id} would otherwise swallow /practice/{kind}
api_router.include_router(practice_router)
api_router.include_router(details_router)
api_router.include_router(content_router)

__all__ = ["api_router"]
