"""
Tenant hierarchy business logic.

Organizations are unique by name; projects are unique by name within their
organization. A project is only written after its organization has been
confirmed to exist, so a missing parent is reported as NotFound rather than
inferred from a foreign-key failure.
"""

from __future__ import annotations

import logging
from typing import Any

from core.db import ConstraintKind, Database
from core.errors import Conflict, Internal, NotFound, ValidationFailure
from core.ids import parse_uuid

from . import repository, schemas

logger = logging.getLogger(__name__)


def _clean_name(name: Any, *, entity: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationFailure(f"{entity} name is required and must be a non-empty string")
    return name.strip()


def _to_organization(row: dict) -> schemas.OrganizationResponse:
    return schemas.OrganizationResponse(
        id=row["id"],
        name=str(row["name"]),
        created_at=row["created_at"],
    )


def _to_project(row: dict) -> schemas.ProjectResponse:
    return schemas.ProjectResponse(
        id=row["id"],
        organization_id=row["organization_id"],
        name=str(row["name"]),
        created_at=row["created_at"],
    )


async def create_organization(db: Database, name: Any) -> schemas.OrganizationResponse:
    clean_name = _clean_name(name, entity="Organization")

    outcome = await repository.insert_organization(db, name=clean_name)
    if outcome.inserted:
        org = _to_organization(outcome.row)
        logger.info("organization_created", extra={"context": {"organization_id": str(org.id)}})
        return org

    if outcome.constraint is ConstraintKind.OTHER_UNIQUE and outcome.constraint_name == "organizations_name_key":
        raise Conflict(f'Organization with name "{clean_name}" already exists')
    raise Internal(f"Unexpected constraint violation creating organization: {outcome.constraint_name}")


async def get_organization(db: Database, organization_id: Any) -> schemas.OrganizationResponse | None:
    parsed = parse_uuid(organization_id)
    if parsed is None:
        return None
    row = await repository.get_organization(db, parsed)
    return _to_organization(row) if row is not None else None


async def create_project(db: Database, organization_id: Any, name: Any) -> schemas.ProjectResponse:
    clean_name = _clean_name(name, entity="Project")

    if not isinstance(organization_id, str) or not organization_id.strip():
        raise ValidationFailure("Organization ID is required and must be a string")

    org = await get_organization(db, organization_id)
    if org is None:
        raise NotFound(f"Organization with id {organization_id.strip()} does not exist")

    outcome = await repository.insert_project(db, organization_id=org.id, name=clean_name)
    if outcome.inserted:
        project = _to_project(outcome.row)
        logger.info(
            "project_created",
            extra={"context": {"project_id": str(project.id), "organization_id": str(org.id)}},
        )
        return project

    if outcome.constraint is ConstraintKind.FOREIGN_KEY:
        raise NotFound(f"Organization with id {org.id} does not exist")
    if (
        outcome.constraint is ConstraintKind.OTHER_UNIQUE
        and outcome.constraint_name == "projects_organization_id_name_key"
    ):
        raise Conflict(f'Project with name "{clean_name}" already exists in this organization')
    raise Internal(f"Unexpected constraint violation creating project: {outcome.constraint_name}")


async def get_project(db: Database, project_id: Any) -> schemas.ProjectResponse | None:
    parsed = parse_uuid(project_id)
    if parsed is None:
        return None
    row = await repository.get_project(db, parsed)
    return _to_project(row) if row is not None else None
