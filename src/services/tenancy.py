"""
Tenant Access Policy.

One policy object decides what a caller may read and write. Every data
service consults it for every read, create, update, delete and status
change: the elevated role sees and touches every organization, every
other role is pinned to its own organization by exact match.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from src.errors import PermissionDeniedError
from src.logging_config import get_logger
from src.schemas.user import ADMIN_ROLES, ELEVATED_ROLE, UserProfile, UserRole

logger = get_logger(__name__)


@dataclass(frozen=True)
class Caller:
    """The authenticated user on whose behalf an operation runs."""

    user_id: str
    role: UserRole
    organization_id: Optional[str] = None
    email: str = ""

    @property
    def is_elevated(self) -> bool:
        return self.role == ELEVATED_ROLE

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @classmethod
    def from_profile(cls, profile: UserProfile) -> Caller:
        return cls(
            user_id=profile.id,
            role=profile.role,
            organization_id=profile.organization_id,
            email=profile.email,
        )


class AccessPolicy:
    """Role- and tenant-based access decisions for a single caller."""

    def __init__(self, caller: Caller) -> None:
        self.caller = caller

    def _deny(self, message: str, **context: Any) -> PermissionDeniedError:
        logger.warning(
            "access_denied",
            reason=message,
            role=self.caller.role.value,
            caller_org=self.caller.organization_id,
            **context,
        )
        return PermissionDeniedError(message, details={k: v for k, v in context.items() if v is not None})

    # -- Organization-scoped records --

    def read_filters(self) -> dict[str, Any]:
        """Filters to add to every organization-scoped query."""
        if self.caller.is_elevated:
            return {}
        if not self.caller.organization_id:
            raise self._deny("Caller does not belong to an organization")
        return {"organization_id": self.caller.organization_id}

    def realtime_filter(self) -> Optional[str]:
        """``postgres_changes`` filter expression for this caller's subscriptions."""
        filters = self.read_filters()
        if not filters:
            return None
        return f"organization_id=eq.{filters['organization_id']}"

    def can_see(self, organization_id: Any) -> bool:
        if self.caller.is_elevated:
            return True
        return (
            self.caller.organization_id is not None
            and organization_id is not None
            and str(organization_id) == str(self.caller.organization_id)
        )

    def ensure_record_access(
        self,
        entity: str,
        record_id: str,
        organization_id: Any,
        action: str,
    ) -> None:
        """Raise unless the caller may ``action`` a record owned by ``organization_id``."""
        if not self.can_see(organization_id):
            raise self._deny(
                f"Not allowed to {action} this {entity}",
                entity=entity,
                record_id=record_id,
                action=action,
            )

    def organization_for_create(self, requested: Optional[str]) -> str:
        """Organization a new record will belong to."""
        if self.caller.is_elevated:
            organization_id = requested or self.caller.organization_id
            if not organization_id:
                raise self._deny("An organization must be specified")
            return organization_id

        if not self.caller.organization_id:
            raise self._deny("Caller does not belong to an organization")
        if requested and requested != self.caller.organization_id:
            raise self._deny(
                "Cannot create records for another organization",
                requested_org=requested,
            )
        return self.caller.organization_id

    # -- Users and organizations --

    def ensure_admin(self, action: str) -> None:
        if not self.caller.is_admin:
            raise self._deny(f"Administrator role required to {action}", action=action)

    def ensure_elevated(self, action: str) -> None:
        if not self.caller.is_elevated:
            raise self._deny(f"{ELEVATED_ROLE.value} role required to {action}", action=action)

    def user_read_filters(self) -> dict[str, Any]:
        """Elevated: everyone. Org admins: their organization. Others: themselves."""
        if self.caller.is_elevated:
            return {}
        if self.caller.role == UserRole.ORG_ADMIN:
            if not self.caller.organization_id:
                raise self._deny("Caller does not belong to an organization")
            return {"organization_id": self.caller.organization_id}
        return {"id": self.caller.user_id}

    def ensure_can_manage_user(self, target: UserProfile, action: str) -> None:
        self.ensure_admin(action)
        if target.role == ELEVATED_ROLE and not self.caller.is_elevated:
            raise self._deny(f"Not allowed to {action} this user", record_id=target.id, action=action)
        self.ensure_record_access("user", target.id, target.organization_id, action)

    def ensure_can_assign_role(self, role: UserRole) -> None:
        if role == ELEVATED_ROLE and not self.caller.is_elevated:
            raise self._deny(f"Only {ELEVATED_ROLE.value} may grant {role.value}", requested_role=role.value)

    def organization_read_filters(self) -> dict[str, Any]:
        if self.caller.is_elevated:
            return {}
        if not self.caller.organization_id:
            raise self._deny("Caller does not belong to an organization")
        return {"id": self.caller.organization_id}
