"""
Auth dependencies for protected FastAPI routes.
"""

from __future__ import annotations

import uuid

from fastapi import Depends, Header, Request

from core.db import Database, get_database
from core.errors import Unauthorized

from . import service


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise Unauthorized("Missing Authorization header")

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise Unauthorized("Invalid Authorization header format. Expected: Bearer <token>")

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise Unauthorized("Invalid Authorization header format. Expected: Bearer <token>")
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return _extract_bearer_token(authorization)


async def get_current_project_id(
    request: Request,
    token: str = Depends(get_bearer_token),
    db: Database = Depends(get_database),
) -> uuid.UUID:
    project_id = await service.resolve_token(db, token)
    if project_id is None:
        raise Unauthorized("Invalid token")
    request.state.project_id = project_id
    return project_id
