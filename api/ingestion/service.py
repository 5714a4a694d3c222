"""
Ingestion "service layer".

`ingest_test_run` guarantees one stored row per (project_id, run_id) no
matter how many times, or how concurrently, the same run is submitted:

1) validate the four raw fields (no storage access on failure)
2) INSERT unconditionally
3) inserted               -> created=True
4) idempotency violation  -> fetch the winner's row, created=False
5) anything else          -> NotFound / Internal, never the idempotency path

There is no check-then-insert: the unique constraint is the single source of
truth for "does this run exist", and the first writer's payload wins.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from core.db import ConstraintKind, Database
from core.errors import Internal, NotFound, ValidationFailure
from core.ids import parse_uuid
from core.timestamps import parse_canonical_timestamp

from . import repository, schemas

logger = logging.getLogger(__name__)

ALLOWED_STATUSES = ("passed", "failed")

# bigint column
MAX_DURATION_MS = 2**63 - 1

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 500


@dataclass(frozen=True)
class RunInput:
    run_id: uuid.UUID
    status: str
    duration_ms: int
    timestamp: datetime


@dataclass(frozen=True)
class IngestResult:
    created: bool
    record: schemas.RunResponse


def _validate_run_id(run_id: Any) -> uuid.UUID:
    parsed = parse_uuid(run_id) if isinstance(run_id, str) else None
    if parsed is None:
        raise ValidationFailure("run_id must be a valid UUID")
    return parsed


def _validate_status(status: Any) -> str:
    value = status.strip() if isinstance(status, str) else None
    if value not in ALLOWED_STATUSES:
        raise ValidationFailure('status must be "passed" or "failed"')
    return value


def _validate_duration_ms(duration_ms: Any) -> int:
    # JSON has one number type: 1234.0 is the integer 1234, 1.5 is not.
    if isinstance(duration_ms, bool):
        raise ValidationFailure("duration_ms must be a non-negative integer")
    if isinstance(duration_ms, float):
        if not math.isfinite(duration_ms) or not duration_ms.is_integer():
            raise ValidationFailure("duration_ms must be a non-negative integer")
        duration_ms = int(duration_ms)
    if not isinstance(duration_ms, int) or duration_ms < 0 or duration_ms > MAX_DURATION_MS:
        raise ValidationFailure("duration_ms must be a non-negative integer")
    return duration_ms


def _validate_timestamp(timestamp: Any) -> datetime:
    # No trimming: the exact input must be the canonical form.
    parsed = parse_canonical_timestamp(timestamp) if isinstance(timestamp, str) else None
    if parsed is None:
        raise ValidationFailure("timestamp must be a valid ISO 8601 date string")
    return parsed


def validate_test_run(run_id: Any, status: Any, duration_ms: Any, timestamp: Any) -> RunInput:
    """
    Validate raw request fields. Upstream validation is not trusted.
    """
    return RunInput(
        run_id=_validate_run_id(run_id),
        status=_validate_status(status),
        duration_ms=_validate_duration_ms(duration_ms),
        timestamp=_validate_timestamp(timestamp),
    )


def _to_run(row: dict) -> schemas.RunResponse:
    return schemas.RunResponse(
        id=row["id"],
        project_id=row["project_id"],
        run_id=row["run_id"],
        status=str(row["status"]),
        duration_ms=int(row["duration_ms"]),
        timestamp=row["timestamp"],
        created_at=row["created_at"],
    )


async def ingest_test_run(
    db: Database,
    project_id: uuid.UUID,
    *,
    run_id: Any,
    status: Any,
    duration_ms: Any,
    timestamp: Any,
) -> IngestResult:
    """
    Store a test run for `project_id` (already authenticated), or return the
    one stored by an earlier or concurrent submission of the same run_id.
    """
    payload = validate_test_run(run_id, status, duration_ms, timestamp)

    outcome = await repository.insert_test_run(
        db,
        project_id=project_id,
        run_id=payload.run_id,
        status=payload.status,
        duration_ms=payload.duration_ms,
        timestamp=payload.timestamp,
    )

    if outcome.inserted:
        record = _to_run(outcome.row)
        logger.info(
            "test_run_created",
            extra={"context": {"project_id": str(project_id), "run_id": str(payload.run_id)}},
        )
        return IngestResult(created=True, record=record)

    if outcome.constraint is ConstraintKind.IDEMPOTENCY_KEY:
        existing = await repository.get_test_run(db, project_id=project_id, run_id=payload.run_id)
        if existing is None:
            logger.error(
                "test_run_missing_after_conflict",
                extra={"context": {"project_id": str(project_id), "run_id": str(payload.run_id)}},
            )
            raise Internal(
                f"Constraint violation but test run {payload.run_id} not found for project {project_id}"
            )
        logger.info(
            "test_run_already_exists",
            extra={"context": {"project_id": str(project_id), "run_id": str(payload.run_id)}},
        )
        return IngestResult(created=False, record=_to_run(existing))

    if outcome.constraint is ConstraintKind.FOREIGN_KEY:
        raise NotFound(f"Project with id {project_id} does not exist")

    raise Internal(f"Unexpected constraint violation storing test run: {outcome.constraint_name}")


async def get_test_run(db: Database, project_id: uuid.UUID, run_id: Any) -> schemas.RunResponse:
    parsed = parse_uuid(run_id) if isinstance(run_id, str) else None
    if parsed is None:
        raise ValidationFailure("run_id must be a valid UUID")
    row = await repository.get_test_run(db, project_id=project_id, run_id=parsed)
    if row is None:
        raise NotFound(f"Test run with run_id {parsed} does not exist")
    return _to_run(row)


async def list_test_runs(
    db: Database,
    project_id: uuid.UUID,
    *,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
) -> schemas.RunListResponse:
    rows = await repository.list_test_runs(db, project_id=project_id, limit=limit, offset=offset)
    runs = [_to_run(row) for row in rows]
    return schemas.RunListResponse(test_runs=runs, limit=limit, offset=offset, count=len(runs))
