"""Central logging configuration for the content service.

One stdout handler on the root logger; every line carries the id of the
request it was emitted under (``-`` outside a request). Engine loggers under
``app.logic`` log one line per cascade generation and reorder phase, so the
request id is what ties those lines together.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig

from app.http.request_id import current_request_id


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id() or "-"
        return True


_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": RequestIdFilter},
    },
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "default",
            "filters": ["request_id"],
            "stream": "ext://sys.stdout",
        }
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        # Statement echo stays off unless asked for explicitly
        "sqlalchemy.engine": {"level": "WARNING"},
        "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
    },
}


def configure_logging(level: str | None = None) -> None:
    """Install the console handler once, at ``level`` (default INFO).

    Returns early when the root logger already has handlers; pytest and the
    uvicorn reloader both install their own.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    config = dict(_DICT_CONFIG)
    if level:
        config["root"] = {**_DICT_CONFIG["root"], "level": level.upper()}
    dictConfig(config)


__all__ = ["RequestIdFilter", "configure_logging"]
