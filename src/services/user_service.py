"""
User Service.

Listing dashboard users and the two administrative actions on them:
activating/deactivating a profile and changing its role.
"""

from __future__ import annotations

from typing import Union

from src.db import DatabaseClient
from src.errors import NotFoundError, PermissionDeniedError, ValidationError
from src.logging_config import get_logger
from src.schemas.user import UserProfile, UserRole
from src.schemas.validation import parse_row
from src.services.collection_service import utc_now
from src.services.tenancy import AccessPolicy, Caller

logger = get_logger(__name__)

USERS_TABLE = "user_profiles"


class UserService:
    def __init__(self, db: DatabaseClient, caller: Caller) -> None:
        self.db = db
        self.caller = caller
        self.policy = AccessPolicy(caller)

    async def list(self) -> list[UserProfile]:
        rows = await self.db.select(
            USERS_TABLE,
            filters=self.policy.user_read_filters(),
            order_by="created_at",
            descending=True,
        )
        return [parse_row(UserProfile, USERS_TABLE, row) for row in rows]

    async def get(self, user_id: str) -> UserProfile:
        row = await self.db.get(USERS_TABLE, user_id)
        if row is None:
            raise NotFoundError("user", user_id)
        return parse_row(UserProfile, USERS_TABLE, row)

    async def set_active(self, user_id: str, active: bool) -> UserProfile:
        target = await self.get(user_id)
        self.policy.ensure_can_manage_user(target, "change the status of")
        if not active and target.id == self.caller.user_id:
            raise PermissionDeniedError("You cannot deactivate your own account")

        profile = await self._save(user_id, {"is_active": active})
        logger.info("user_active_changed", target_user_id=user_id, is_active=active)
        return profile

    async def toggle_active(self, user_id: str) -> UserProfile:
        target = await self.get(user_id)
        return await self.set_active(user_id, not target.is_active)

    async def update_role(self, user_id: str, role: Union[UserRole, str]) -> UserProfile:
        try:
            new_role = UserRole(role)
        except ValueError:
            raise ValidationError(field_errors={"role": f"Unknown role '{role}'"}) from None

        target = await self.get(user_id)
        self.policy.ensure_can_manage_user(target, "change the role of")
        self.policy.ensure_can_assign_role(new_role)

        profile = await self._save(user_id, {"role": new_role.value})
        logger.info(
            "user_role_changed",
            target_user_id=user_id,
            from_role=target.role.value,
            to_role=new_role.value,
        )
        return profile

    async def _save(self, user_id: str, updates: dict) -> UserProfile:
        row = await self.db.update(
            USERS_TABLE,
            user_id,
            {**updates, "updated_at": utc_now().isoformat()},
        )
        if row is None:
            raise NotFoundError("user", user_id)
        return parse_row(UserProfile, USERS_TABLE, row)
