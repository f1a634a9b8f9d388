from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import AppConfig, load_config
from app.db.base import build_engine
from app.db.migrations_runner import apply_migrations
from app.http.envelope import (
    error_response,
    handle_content_error,
    handle_http_exception,
    handle_integrity_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from app.http.request_id import RequestIdMiddleware
from app.logging_setup import configure_logging
from app.logic.entity_store import EntityStore
from app.logic.errors import ContentError
from app.logic.query_cache import QueryCache
from app.middleware.cors import apply_cors
from app.routes import api_router

logger = logging.getLogger(__name__)


def build_store(config: AppConfig) -> EntityStore:
    """Build the engine, bring the schema up to date and wrap both in a store."""
    engine = build_engine(config.database.dsn)
    if config.migrations.auto_apply:
        try:
            apply_migrations(engine, config.migrations.directory)
        except Exception:
            logger.error("Failed to apply migrations at startup", exc_info=True)
            raise
    else:
        logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
    cache = QueryCache(config.cache.ttl_seconds, config.cache.max_entries)
    return EntityStore(engine, cache)


def create_app(config: Optional[AppConfig] = None, store: Optional[EntityStore] = None) -> FastAPI:
    config = config or load_config()
    # Configure global logging before app instantiation so all modules emit
    configure_logging(config.log_level)

    app = FastAPI(title="Exam Content Service")
    app.state.config = config
    app.state.store = store or build_store(config)

    app.add_exception_handler(ContentError, handle_content_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(RequestIdMiddleware)
    apply_cors(app, origins=config.cors_origins)

    app.include_router(api_router, prefix="/api")

    # Health endpoint (out of prefix so probes need no credentials)
    @app.get("/health")
    def health():
        try:
            app.state.store.ping()
        except SQLAlchemyError:
            logger.error("Health DB check failed", exc_info=True)
            return error_response("Database unavailable", 503, {"db": False})
        return {"status": "ok", "db": True}

    return app


__all__ = ["build_store", "create_app"]
