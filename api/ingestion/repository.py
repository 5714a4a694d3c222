"""
Test-run persistence.
This module is where ingestion-related SQL lives.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from core.db import Database, InsertOutcome
from core.ids import new_id

# The (project_id, run_id) unique constraint; its violation means "already ingested".
IDEMPOTENCY_CONSTRAINT = "test_runs_project_id_run_id_key"

_COLUMNS = "id, project_id, run_id, status, duration_ms, timestamp, created_at"


async def insert_test_run(
    db: Database,
    *,
    project_id: uuid.UUID,
    run_id: uuid.UUID,
    status: str,
    duration_ms: int,
    timestamp: datetime,
) -> InsertOutcome:
    """
    Insert unconditionally. No existence check happens first: the unique
    constraint decides which concurrent writer wins.
    """
    return await db.insert_returning(
        f"""
        INSERT INTO test_runs (id, project_id, run_id, status, duration_ms, timestamp)
        VALUES ($1, $2, $3, $4, $5, $6)
        RETURNING {_COLUMNS}
        """,
        new_id(),
        project_id,
        run_id,
        status,
        duration_ms,
        timestamp,
        idempotency_constraint=IDEMPOTENCY_CONSTRAINT,
    )


async def get_test_run(db: Database, *, project_id: uuid.UUID, run_id: uuid.UUID) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {_COLUMNS}
        FROM test_runs
        WHERE project_id = $1
          AND run_id = $2
        """,
        project_id,
        run_id,
    )


async def list_test_runs(
    db: Database,
    *,
    project_id: uuid.UUID,
    limit: int = 100,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """
    List a project's test runs, newest first.
    """
    return await db.fetch_all(
        f"""
        SELECT {_COLUMNS}
        FROM test_runs
        WHERE project_id = $1
        ORDER BY created_at DESC, id DESC
        LIMIT $2
        OFFSET $3
        """,
        project_id,
        limit,
        offset,
    )
