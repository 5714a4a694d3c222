"""
Provisioning endpoints for organizations and projects.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from core.db import Database, get_database

from . import schemas, service

router = APIRouter()


@router.post("/orgs", status_code=status.HTTP_201_CREATED, response_model=schemas.OrganizationResponse)
async def create_organization(
    request: schemas.CreateOrganizationRequest,
    db: Database = Depends(get_database),
) -> schemas.OrganizationResponse:
    return await service.create_organization(db, request.name)


@router.post("/projects", status_code=status.HTTP_201_CREATED, response_model=schemas.ProjectResponse)
async def create_project(
    request: schemas.CreateProjectRequest,
    db: Database = Depends(get_database),
) -> schemas.ProjectResponse:
    return await service.create_project(db, request.organization_id, request.name)
