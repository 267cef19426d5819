"""
Data models for dashboard users and authentication requests.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ORG_ADMIN = "org_admin"
    AGENT = "agent"
    USER = "user"

    @classmethod
    def _missing_(cls, value: object) -> Optional["UserRole"]:
        # Older profiles were created with role "client"
        if value == "client":
            return cls.USER
        return None


ELEVATED_ROLE = UserRole.SUPER_ADMIN
ADMIN_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ORG_ADMIN})


class UserProfile(BaseModel):
    id: str
    organization_id: Optional[str] = None
    email: str = ""
    full_name: str = ""
    role: UserRole = UserRole.USER
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SignInRequest(BaseModel):
    email: str
    password: str = Field(min_length=1)


class SignUpRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)
    organization_id: Optional[str] = None


class RoleUpdate(BaseModel):
    role: UserRole


class SessionResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    user_id: str
