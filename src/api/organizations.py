"""
API Router — Client Organization Endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from src.api.deps import get_organization_service
from src.schemas.organization import Organization
from src.services.organization_service import OrganizationService

router = APIRouter(prefix="/organizations", tags=["Organizations"])


@router.get("/", response_model=list[Organization])
async def list_organizations(
    service: OrganizationService = Depends(get_organization_service),
) -> list[Organization]:
    return await service.list()


@router.post("/", response_model=Organization, status_code=201)
async def create_organization(
    body: dict[str, Any] = Body(...),
    service: OrganizationService = Depends(get_organization_service),
) -> Organization:
    return await service.create(body)


@router.get("/{organization_id}", response_model=Organization)
async def get_organization(
    organization_id: str,
    service: OrganizationService = Depends(get_organization_service),
) -> Organization:
    return await service.get(organization_id)


@router.patch("/{organization_id}", response_model=Organization)
async def update_organization(
    organization_id: str,
    body: dict[str, Any] = Body(...),
    service: OrganizationService = Depends(get_organization_service),
) -> Organization:
    return await service.update(organization_id, body)
