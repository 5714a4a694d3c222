"""
Process settings read from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_TOKEN_PREFIX = "ta_live_"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    # Empty means "read DATABASE_URL when the pool opens".
    database_url: str = field(default_factory=lambda: os.environ.get("DATABASE_URL", "").strip())
    db_pool_min_size: int = field(default_factory=lambda: _env_int("DB_POOL_MIN_SIZE", 1))
    db_pool_max_size: int = field(default_factory=lambda: _env_int("DB_POOL_MAX_SIZE", 10))
    db_command_timeout_s: float = field(default_factory=lambda: _env_float("DB_COMMAND_TIMEOUT_S", 30.0))
    db_apply_schema: bool = field(default_factory=lambda: _env_bool("DB_APPLY_SCHEMA", True))
    token_prefix: str = field(
        default_factory=lambda: os.environ.get("TOKEN_PREFIX", DEFAULT_TOKEN_PREFIX).strip() or DEFAULT_TOKEN_PREFIX
    )
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").strip() or "INFO")
    log_json: bool = field(default_factory=lambda: _env_bool("LOG_JSON", True))
