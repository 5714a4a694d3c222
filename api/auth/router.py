"""
Token provisioning endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from core.db import Database, get_database

from . import schemas, service

router = APIRouter()


@router.post("/tokens", status_code=status.HTTP_201_CREATED, response_model=schemas.IssuedTokenResponse)
async def create_token(
    body: schemas.CreateTokenRequest,
    request: Request,
    db: Database = Depends(get_database),
) -> schemas.IssuedTokenResponse:
    return await service.issue_token(db, body.project_id, prefix=request.app.state.settings.token_prefix)
