"""
Async database access (raw SQL) using asyncpg.

`Database` owns the connection pool. The app factory creates one instance per
process, stores it on `app.state.database`, and every repository function
receives it explicitly (see `get_database`).

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Integrity violations on INSERT are not raised. `insert_returning` turns them
into an `InsertOutcome` tagged with a `ConstraintKind`, using asyncpg's typed
exceptions and the violated constraint's name.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg
from fastapi import Request

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

# Children first, so foreign keys never block the delete.
_TABLES_IN_DELETE_ORDER = ("test_runs", "api_tokens", "projects", "organizations")


class ConstraintKind(str, Enum):
    NONE = "none"
    IDEMPOTENCY_KEY = "idempotency_key"
    FOREIGN_KEY = "foreign_key"
    OTHER_UNIQUE = "other_unique"


@dataclass(frozen=True)
class InsertOutcome:
    row: dict[str, Any] | None
    constraint: ConstraintKind = ConstraintKind.NONE
    constraint_name: str | None = None

    @property
    def inserted(self) -> bool:
        return self.constraint is ConstraintKind.NONE and self.row is not None


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url(env_var: str = "DATABASE_URL") -> str:
    url = os.environ.get(env_var, "").strip()
    if not url:
        raise RuntimeError(f"{env_var} is not set.")
    return _sanitize_database_url(url)


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


def classify_violation(
    exc: asyncpg.IntegrityConstraintViolationError,
    *,
    idempotency_constraint: str | None = None,
) -> ConstraintKind | None:
    """
    Map an asyncpg integrity error to a ConstraintKind.

    Returns None for violations this layer does not classify (NOT NULL,
    CHECK, ...); callers re-raise those.
    """
    if isinstance(exc, asyncpg.ForeignKeyViolationError):
        return ConstraintKind.FOREIGN_KEY
    if isinstance(exc, asyncpg.UniqueViolationError):
        if idempotency_constraint is not None and exc.constraint_name == idempotency_constraint:
            return ConstraintKind.IDEMPOTENCY_KEY
        return ConstraintKind.OTHER_UNIQUE
    return None


class Database:
    def __init__(
        self,
        dsn: str | None = None,
        *,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: float = 30,
        pool: asyncpg.Pool | None = None,
    ) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool = pool

    async def connect(self) -> None:
        if self._pool is not None:
            return None
        self._pool = await asyncpg.create_pool(
            dsn=self._dsn or database_url(),
            min_size=self._min_size,
            max_size=self._max_size,
            command_timeout=self._command_timeout,
        )
        logger.info("db_pool_opened min_size=%s max_size=%s", self._min_size, self._max_size)

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None
        logger.info("db_pool_closed")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call connect() on startup.")
        return self._pool

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self.pool.fetchrow(sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        rows = await self.pool.fetch(sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def execute(self, sql: str, *args: Any) -> None:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
        """
        await self.pool.execute(sql, *args)

    async def insert_returning(
        self,
        sql: str,
        *args: Any,
        idempotency_constraint: str | None = None,
    ) -> InsertOutcome:
        """
        Run a single `INSERT ... RETURNING` statement in autocommit mode.

        Unique and foreign-key violations come back as a tagged outcome
        instead of an exception. When the violated unique constraint is
        `idempotency_constraint`, the outcome is IDEMPOTENCY_KEY.
        """
        try:
            row = await self.pool.fetchrow(sql, *args)
        except asyncpg.IntegrityConstraintViolationError as exc:
            kind = classify_violation(exc, idempotency_constraint=idempotency_constraint)
            if kind is None:
                raise
            return InsertOutcome(row=None, constraint=kind, constraint_name=exc.constraint_name)

        if row is None:
            raise RuntimeError("INSERT returned no row.")
        return InsertOutcome(row=_record_to_dict(row))

    async def ensure_schema(self, path: Path | None = None) -> None:
        schema_sql = (path or SCHEMA_PATH).read_text(encoding="utf-8")
        async with self.pool.acquire() as conn:  # type: asyncpg.Connection
            await conn.execute(schema_sql)
        logger.info("db_schema_applied path=%s", path or SCHEMA_PATH)

    async def truncate_all(self) -> None:
        """
        Remove every row from the four tables, keeping the schema.
        """
        async with self.pool.acquire() as conn:  # type: asyncpg.Connection
            async with conn.transaction():
                for table in _TABLES_IN_DELETE_ORDER:
                    await conn.execute(f"DELETE FROM {table}")


def get_database(request: Request) -> Database:
    return request.app.state.database
