"""
Token issuance and resolution.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from core.db import ConstraintKind, Database
from core.errors import Conflict, Internal, NotFound, ValidationFailure
from core.settings import DEFAULT_TOKEN_PREFIX
from tenants import service as tenant_service

from . import repository, schemas, security

logger = logging.getLogger(__name__)


async def issue_token(
    db: Database,
    project_id: Any,
    *,
    prefix: str = DEFAULT_TOKEN_PREFIX,
) -> schemas.IssuedTokenResponse:
    """
    Create a token for an existing project and return the raw value.

    The raw value exists only in the returned object; the database keeps its
    hash and the logs keep the token row id.
    """
    if not isinstance(project_id, str) or not project_id.strip():
        raise ValidationFailure("Project ID is required and must be a string")

    project = await tenant_service.get_project(db, project_id)
    if project is None:
        raise NotFound(f"Project with id {project_id.strip()} does not exist")

    raw_token = security.generate_token(prefix)
    outcome = await repository.insert_token(
        db,
        project_id=project.id,
        token_hash=security.hash_token(raw_token),
    )

    if not outcome.inserted:
        if outcome.constraint is ConstraintKind.FOREIGN_KEY:
            raise NotFound(f"Project with id {project.id} does not exist")
        if outcome.constraint is ConstraintKind.OTHER_UNIQUE and outcome.constraint_name == "api_tokens_token_hash_key":
            raise Conflict("Token hash already exists")
        raise Internal(f"Unexpected constraint violation creating token: {outcome.constraint_name}")

    logger.info(
        "token_issued",
        extra={"context": {"project_id": str(project.id), "token_id": str(outcome.row["id"])}},
    )
    return schemas.IssuedTokenResponse(token=raw_token, project_id=project.id)


async def resolve_token(db: Database, raw_token: Any) -> uuid.UUID | None:
    """
    Return the project that owns `raw_token`, or None.

    Bad input (missing, non-string, blank, unknown) is an authentication
    failure, not an error. Storage failures still propagate.
    """
    if not isinstance(raw_token, str) or not raw_token.strip():
        return None
    try:
        token_hash = security.hash_token(raw_token)
    except security.TokenSecurityError:
        return None
    return await repository.find_project_id_by_token_hash(db, token_hash)
