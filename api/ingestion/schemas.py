"""
Ingestion API schemas (request/response models).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, field_serializer

from core.timestamps import format_timestamp


class IngestRequest(BaseModel):
    # Untyped: the ingestion service validates these itself
    # and reports its own messages.
    run_id: Any = None
    status: Any = None
    duration_ms: Any = None
    timestamp: Any = None


class RunResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    run_id: uuid.UUID
    status: Literal["passed", "failed"]
    duration_ms: int
    timestamp: datetime
    created_at: datetime

    @field_serializer("timestamp", "created_at")
    def _serialize_instant(self, value: datetime) -> str:
        return format_timestamp(value)


class RunListResponse(BaseModel):
    test_runs: list[RunResponse]
    limit: int
    offset: int
    count: int
