"""Configuration loading for the exam content service.

This module loads application configuration with the following rules:
- Primary source: `content_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONTENT_CONFIG = Path("content_config.json")
DEFAULT_DSN = "sqlite+pysqlite:///:memory:"
logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _flag(text: Optional[str]) -> bool:
    return str(text).strip().lower() in _TRUE


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class AuthConfig(BaseModel):
    enabled: bool = True
    jwt_secret: str = Field(default="change-me")
    algorithm: str = Field(default="HS256")

    @field_validator("algorithm")
    @classmethod
    def algorithm_must_be_hmac(cls, v: str) -> str:
        allowed = {"HS256", "HS384", "HS512"}
        if v not in allowed:
            raise ValueError(f"auth.algorithm must be one of {sorted(allowed)}")
        return v


class CacheConfig(BaseModel):
    ttl_seconds: float = Field(default=300, ge=0)
    max_entries: int = Field(default=100, ge=0)


class MigrationsConfig(BaseModel):
    auto_apply: bool = True
    directory: str = "migrations"


class AppConfig(BaseModel):
    database: DatabaseConfig
    auth: AuthConfig
    cache: CacheConfig
    migrations: MigrationsConfig
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) content_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONTENT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Database; the test URL wins so suites never touch a real database
    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or DEFAULT_DSN
    )

    # Auth gate
    auth_enabled = _env("AUTH_ENABLED") or _read_config_file("auth.enabled") or _base("auth.enabled", "true")
    jwt_secret = _env("JWT_SECRET") or _read_config_file("auth.jwt_secret") or _base("auth.jwt_secret", "change-me")
    algorithm = _env("JWT_ALGORITHM") or _read_config_file("auth.algorithm") or _base("auth.algorithm", "HS256")

    # List cache
    ttl_text = _env("CACHE_TTL_SECONDS") or _read_config_file("cache.ttl_seconds") or _base("cache.ttl_seconds", "300")
    max_text = _env("CACHE_MAX_ENTRIES") or _read_config_file("cache.max_entries") or _base("cache.max_entries", "100")

    # Migrations
    auto_apply = _env("AUTO_APPLY_MIGRATIONS") or _read_config_file("migrations.auto_apply") or _base("migrations.auto_apply", "true")
    mig_dir = _env("MIGRATIONS_DIR") or _read_config_file("migrations.directory") or _base("migrations.directory", "migrations")

    origins_text = _env("CORS_ORIGINS") or _read_config_file("cors.origins")
    if origins_text:
        origins = [o.strip() for o in origins_text.split(",") if o.strip()]
    else:
        raw_origins = base.get("cors_origins")
        origins = [str(o) for o in raw_origins] if isinstance(raw_origins, list) else ["*"]

    log_level = _env("LOG_LEVEL") or _read_config_file("logging.level") or _base("logging.level", "INFO")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn),
            auth=AuthConfig(enabled=_flag(auth_enabled), jwt_secret=jwt_secret, algorithm=str(algorithm).strip()),
            cache=CacheConfig(ttl_seconds=float(str(ttl_text).strip()), max_entries=int(str(max_text).strip())),
            migrations=MigrationsConfig(auto_apply=_flag(auto_apply), directory=str(mig_dir)),
            cors_origins=origins or ["*"],
            log_level=str(log_level).strip().upper(),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "AuthConfig",
    "CacheConfig",
    "MigrationsConfig",
    "load_config",
]
