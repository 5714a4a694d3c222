"""
Tenant persistence: organizations and projects.
"""

from __future__ import annotations

import uuid
from typing import Any

from core.db import Database, InsertOutcome
from core.ids import new_id


async def insert_organization(db: Database, *, name: str) -> InsertOutcome:
    return await db.insert_returning(
        """
        INSERT INTO organizations (id, name)
        VALUES ($1, $2)
        RETURNING id, name, created_at
        """,
        new_id(),
        name,
    )


async def get_organization(db: Database, organization_id: uuid.UUID) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, name, created_at
        FROM organizations
        WHERE id = $1
        """,
        organization_id,
    )


async def insert_project(db: Database, *, organization_id: uuid.UUID, name: str) -> InsertOutcome:
    return await db.insert_returning(
        """
        INSERT INTO projects (id, organization_id, name)
        VALUES ($1, $2, $3)
        RETURNING id, organization_id, name, created_at
        """,
        new_id(),
        organization_id,
        name,
    )


async def get_project(db: Database, project_id: uuid.UUID) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, organization_id, name, created_at
        FROM projects
        WHERE id = $1
        """,
        project_id,
    )
