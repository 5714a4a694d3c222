"""Shared fixtures.

Service and API tests run against `InMemoryStore`, which replaces the
repository functions of each feature package. It enforces the same unique
and foreign-key constraints as `api/core/schema.sql`, and yields to the event
loop before every write so concurrent callers genuinely interleave.

PostgreSQL-backed tests live in `tests/integration/` and need
TEST_DATABASE_URL.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from auth import repository as auth_repository
from core.db import ConstraintKind, InsertOutcome
from core.settings import Settings
from ingestion import repository as ingestion_repository
from main import create_app
from tenants import repository as tenants_repository


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore:
    def __init__(self) -> None:
        self.organizations: dict[uuid.UUID, dict[str, Any]] = {}
        self.projects: dict[uuid.UUID, dict[str, Any]] = {}
        self.tokens: dict[uuid.UUID, dict[str, Any]] = {}
        self.test_runs: dict[uuid.UUID, dict[str, Any]] = {}
        self.insert_attempts: dict[str, int] = {}
        # Set to simulate a row that disappears between conflict and fetch.
        self.hide_test_runs_on_fetch = False

    def _count(self, table: str) -> None:
        self.insert_attempts[table] = self.insert_attempts.get(table, 0) + 1

    @staticmethod
    def _violation(kind: ConstraintKind, name: str) -> InsertOutcome:
        return InsertOutcome(row=None, constraint=kind, constraint_name=name)

    # -- tenants ---------------------------------------------------------

    async def insert_organization(self, db: Any, *, name: str) -> InsertOutcome:
        self._count("organizations")
        await asyncio.sleep(0)
        if any(org["name"] == name for org in self.organizations.values()):
            return self._violation(ConstraintKind.OTHER_UNIQUE, "organizations_name_key")
        row = {"id": uuid.uuid4(), "name": name, "created_at": _now()}
        self.organizations[row["id"]] = row
        return InsertOutcome(row=dict(row))

    async def get_organization(self, db: Any, organization_id: uuid.UUID) -> dict[str, Any] | None:
        row = self.organizations.get(organization_id)
        return dict(row) if row is not None else None

    async def insert_project(self, db: Any, *, organization_id: uuid.UUID, name: str) -> InsertOutcome:
        self._count("projects")
        await asyncio.sleep(0)
        if organization_id not in self.organizations:
            return self._violation(ConstraintKind.FOREIGN_KEY, "projects_organization_id_fkey")
        if any(
            p["organization_id"] == organization_id and p["name"] == name for p in self.projects.values()
        ):
            return self._violation(ConstraintKind.OTHER_UNIQUE, "projects_organization_id_name_key")
        row = {"id": uuid.uuid4(), "organization_id": organization_id, "name": name, "created_at": _now()}
        self.projects[row["id"]] = row
        return InsertOutcome(row=dict(row))

    async def get_project(self, db: Any, project_id: uuid.UUID) -> dict[str, Any] | None:
        row = self.projects.get(project_id)
        return dict(row) if row is not None else None

    # -- tokens ----------------------------------------------------------

    async def insert_token(self, db: Any, *, project_id: uuid.UUID, token_hash: str) -> InsertOutcome:
        self._count("api_tokens")
        await asyncio.sleep(0)
        if project_id not in self.projects:
            return self._violation(ConstraintKind.FOREIGN_KEY, "api_tokens_project_id_fkey")
        if any(t["token_hash"] == token_hash for t in self.tokens.values()):
            return self._violation(ConstraintKind.OTHER_UNIQUE, "api_tokens_token_hash_key")
        row = {"id": uuid.uuid4(), "project_id": project_id, "token_hash": token_hash, "created_at": _now()}
        self.tokens[row["id"]] = row
        return InsertOutcome(row={k: v for k, v in row.items() if k != "token_hash"})

    async def find_project_id_by_token_hash(self, db: Any, token_hash: str) -> uuid.UUID | None:
        for token in self.tokens.values():
            if token["token_hash"] == token_hash:
                return token["project_id"]
        return None

    # -- test runs -------------------------------------------------------

    async def insert_test_run(
        self,
        db: Any,
        *,
        project_id: uuid.UUID,
        run_id: uuid.UUID,
        status: str,
        duration_ms: int,
        timestamp: datetime,
    ) -> InsertOutcome:
        self._count("test_runs")
        await asyncio.sleep(0)
        if project_id not in self.projects:
            return self._violation(ConstraintKind.FOREIGN_KEY, "test_runs_project_id_fkey")
        if any(r["project_id"] == project_id and r["run_id"] == run_id for r in self.test_runs.values()):
            return self._violation(ConstraintKind.IDEMPOTENCY_KEY, ingestion_repository.IDEMPOTENCY_CONSTRAINT)
        row = {
            "id": uuid.uuid4(),
            "project_id": project_id,
            "run_id": run_id,
            "status": status,
            "duration_ms": duration_ms,
            "timestamp": timestamp,
            "created_at": _now(),
        }
        self.test_runs[row["id"]] = row
        return InsertOutcome(row=dict(row))

    async def get_test_run(self, db: Any, *, project_id: uuid.UUID, run_id: uuid.UUID) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        if self.hide_test_runs_on_fetch:
            return None
        for row in self.test_runs.values():
            if row["project_id"] == project_id and row["run_id"] == run_id:
                return dict(row)
        return None

    async def list_test_runs(
        self,
        db: Any,
        *,
        project_id: uuid.UUID,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        rows = [dict(r) for r in self.test_runs.values() if r["project_id"] == project_id]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows[offset : offset + limit]

    def runs_for(self, project_id: uuid.UUID) -> list[dict[str, Any]]:
        return [r for r in self.test_runs.values() if r["project_id"] == project_id]


_PATCHED = {
    tenants_repository: ("insert_organization", "get_organization", "insert_project", "get_project"),
    auth_repository: ("insert_token", "find_project_id_by_token_hash"),
    ingestion_repository: ("insert_test_run", "get_test_run", "list_test_runs"),
}


@pytest.fixture()
def store(monkeypatch) -> InMemoryStore:
    """Route every repository call through a fresh in-memory store."""
    memory = InMemoryStore()
    for module, names in _PATCHED.items():
        for name in names:
            monkeypatch.setattr(module, name, getattr(memory, name))
    return memory


@pytest.fixture()
def fake_db() -> object:
    """Stands in for `Database`; the patched repositories never touch it."""
    return object()


@pytest.fixture()
def app_settings() -> Settings:
    return Settings(
        database_url="postgresql://unused@localhost/unused",
        db_apply_schema=False,
        token_prefix="ta_test_",
        log_level="WARNING",
        log_json=True,
    )


@pytest_asyncio.fixture()
async def client(store, fake_db, app_settings):
    app = create_app(settings=app_settings, database=fake_db)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def provision(client):
    """
    Factory: create an organization, a project in it and a token for it
    through the HTTP API. Returns ids plus ready-to-use auth headers.
    """

    async def _provision(org_name: str = "Acme", project_name: str = "API") -> dict[str, Any]:
        org = await client.post("/orgs", json={"name": org_name})
        assert org.status_code == 201, org.text
        project = await client.post(
            "/projects", json={"organization_id": org.json()["id"], "name": project_name}
        )
        assert project.status_code == 201, project.text
        token = await client.post("/tokens", json={"project_id": project.json()["id"]})
        assert token.status_code == 201, token.text
        raw = token.json()["token"]
        return {
            "organization_id": org.json()["id"],
            "project_id": project.json()["id"],
            "token": raw,
            "headers": {"Authorization": f"Bearer {raw}"},
        }

    return _provision


VALID_RUN = {
    "run_id": "770e8400-e29b-41d4-a716-446655440002",
    "status": "passed",
    "duration_ms": 1234,
    "timestamp": "2026-01-12T10:10:00.000Z",
}
