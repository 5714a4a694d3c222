"""
Tenant API schemas (request/response models).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, field_serializer

from core.timestamps import format_timestamp


class CreateOrganizationRequest(BaseModel):
    name: str | None = None


class CreateProjectRequest(BaseModel):
    organization_id: str | None = None
    name: str | None = None


class OrganizationResponse(BaseModel):
    id: uuid.UUID
    name: str
    created_at: datetime

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)


class ProjectResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    created_at: datetime

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)
