"""
FastAPI router for ingestion endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from auth import dependencies as auth_dependencies
from core.db import Database, get_database

from . import schemas, service

router = APIRouter()


@router.post("/ingest", response_model=schemas.RunResponse)
async def ingest(
    request: schemas.IngestRequest,
    response: Response,
    project_id: uuid.UUID = Depends(auth_dependencies.get_current_project_id),
    db: Database = Depends(get_database),
) -> schemas.RunResponse:
    """
    Store a test run for the token's project.

    201 when this call created the run, 200 when it already existed (the
    stored record is returned unchanged).
    """
    result = await service.ingest_test_run(
        db,
        project_id,
        run_id=request.run_id,
        status=request.status,
        duration_ms=request.duration_ms,
        timestamp=request.timestamp,
    )
    response.status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    return result.record


@router.get("/test-runs", response_model=schemas.RunListResponse)
async def list_test_runs(
    limit: int = Query(service.DEFAULT_LIST_LIMIT, ge=1, le=service.MAX_LIST_LIMIT),
    offset: int = Query(0, ge=0),
    project_id: uuid.UUID = Depends(auth_dependencies.get_current_project_id),
    db: Database = Depends(get_database),
) -> schemas.RunListResponse:
    """
    List the token's project's test runs, newest first.
    """
    return await service.list_test_runs(db, project_id, limit=limit, offset=offset)


@router.get("/test-runs/{run_id}", response_model=schemas.RunResponse)
async def get_test_run(
    run_id: str,
    project_id: uuid.UUID = Depends(auth_dependencies.get_current_project_id),
    db: Database = Depends(get_database),
) -> schemas.RunResponse:
    return await service.get_test_run(db, project_id, run_id)
