"""
API token persistence. Only token hashes ever reach this module.
"""

from __future__ import annotations

import uuid

from core.db import Database, InsertOutcome
from core.ids import new_id


async def insert_token(db: Database, *, project_id: uuid.UUID, token_hash: str) -> InsertOutcome:
    return await db.insert_returning(
        """
        INSERT INTO api_tokens (id, project_id, token_hash)
        VALUES ($1, $2, $3)
        RETURNING id, project_id, created_at
        """,
        new_id(),
        project_id,
        token_hash,
    )


async def find_project_id_by_token_hash(db: Database, token_hash: str) -> uuid.UUID | None:
    row = await db.fetch_one(
        """
        SELECT project_id
        FROM api_tokens
        WHERE token_hash = $1
        """,
        token_hash,
    )
    return row["project_id"] if row is not None else None
