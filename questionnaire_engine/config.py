"""Configuration utilities for the questionnaire engine.

This module loads application configuration with the following rules:
- Primary source: `questionnaire_config.json` at the project root.
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
ROOT_CONFIG = Path("questionnaire_config.json")
DEFAULT_DSN = "sqlite+pysqlite:///:memory:"
logger = logging.getLogger(__name__)


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


def _as_bool(text: object) -> bool:
    return str(text).strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str
    timeout_seconds: float = Field(default=5.0, gt=0)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class SecurityConfig(BaseModel):
    csrf_secret: str = Field(min_length=8)
    require_csrf: bool = Field(default=True)


class BuilderConfig(BaseModel):
    seed_fixed_contact_fields: bool = Field(default=True)


class AppConfig(BaseModel):
    database: DatabaseConfig
    security: SecurityConfig
    builder: BuilderConfig


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
    3) questionnaire_config.json at project root
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Database
    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or DEFAULT_DSN
    )
    timeout_text = _env("DATABASE_TIMEOUT_SECONDS") or _read_config_file("database.timeout_seconds") or _base("database.timeout_seconds", "5")

    # Security
    csrf_secret = _env("CSRF_SECRET") or _read_config_file("security.csrf_secret") or _base("security.csrf_secret", "change-me-in-production")
    require_csrf_text = _env("REQUIRE_CSRF") or _read_config_file("security.require_csrf") or _base("security.require_csrf", "true")

    # Builder
    seed_text = (
        _env("SEED_FIXED_CONTACT_FIELDS")
        or _read_config_file("builder.seed_fixed_contact_fields")
        or _base("builder.seed_fixed_contact_fields", "true")
    )

    try:
        return AppConfig(
            database=DatabaseConfig(dsn=dsn, timeout_seconds=float(str(timeout_text).strip())),
            security=SecurityConfig(csrf_secret=str(csrf_secret), require_csrf=_as_bool(require_csrf_text)),
            builder=BuilderConfig(seed_fixed_contact_fields=_as_bool(seed_text)),
        )
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "SecurityConfig",
    "BuilderConfig",
    "load_config",
]
