"""
Organization Service.

Client organizations (tenants). Only the elevated role creates them; an
organization's own admins may edit it.
"""

from __future__ import annotations

from typing import Any, Union

from src.db import DatabaseClient
from src.errors import NotFoundError, ValidationError
from src.logging_config import get_logger
from src.schemas.organization import Organization, OrganizationCreate, OrganizationUpdate
from src.schemas.user import UserRole
from src.schemas.validation import parse_row, validate_payload
from src.services.collection_service import utc_now
from src.services.tenancy import AccessPolicy, Caller

logger = get_logger(__name__)

ORGANIZATIONS_TABLE = "organizations"


class OrganizationService:
    def __init__(self, db: DatabaseClient, caller: Caller) -> None:
        self.db = db
        self.caller = caller
        self.policy = AccessPolicy(caller)

    async def list(self) -> list[Organization]:
        rows = await self.db.select(
            ORGANIZATIONS_TABLE,
            filters=self.policy.organization_read_filters(),
            order_by="name",
        )
        return [parse_row(Organization, ORGANIZATIONS_TABLE, row) for row in rows]

    async def get(self, organization_id: str) -> Organization:
        row = await self.db.get(ORGANIZATIONS_TABLE, organization_id)
        if row is None:
            raise NotFoundError("organization", organization_id)
        self.policy.ensure_record_access("organization", organization_id, row.get("id"), "view")
        return parse_row(Organization, ORGANIZATIONS_TABLE, row)

    async def create(self, data: Union[OrganizationCreate, dict[str, Any]]) -> Organization:
        org_in = data if isinstance(data, OrganizationCreate) else validate_payload(OrganizationCreate, data)
        self.policy.ensure_elevated("create organizations")

        row = await self.db.insert(
            ORGANIZATIONS_TABLE,
            {**org_in.model_dump(mode="json"), "is_active": True},
        )
        organization = parse_row(Organization, ORGANIZATIONS_TABLE, row)
        logger.info("organization_created", organization_id=organization.id, name=organization.name)
        return organization

    async def update(
        self,
        organization_id: str,
        changes: Union[OrganizationUpdate, dict[str, Any]],
    ) -> Organization:
        edit = changes if isinstance(changes, OrganizationUpdate) else validate_payload(OrganizationUpdate, changes)
        updates = edit.model_dump(mode="json", exclude_unset=True)
        if not updates:
            raise ValidationError("No changes supplied")

        await self.get(organization_id)
        if not self.caller.is_elevated:
            if self.caller.role != UserRole.ORG_ADMIN:
                self.policy.ensure_elevated("update organizations")
            # Deactivating a tenant is reserved for the elevated role
            if "is_active" in updates:
                self.policy.ensure_elevated("change an organization's status")

        row = await self.db.update(
            ORGANIZATIONS_TABLE,
            organization_id,
            {**updates, "updated_at": utc_now().isoformat()},
        )
        if row is None:
            raise NotFoundError("organization", organization_id)

        logger.info("organization_updated", organization_id=organization_id, fields=sorted(updates))
        return parse_row(Organization, ORGANIZATIONS_TABLE, row)
