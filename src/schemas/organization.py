"""
Data models for client organizations (tenants).
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class Organization(BaseModel):
    id: str
    name: str
    domain: Optional[str] = None
    subscription_tier: str = "starter"
    business_type: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=2)
    domain: Optional[str] = None
    subscription_tier: str = "starter"
    business_type: Optional[str] = None


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2)
    domain: Optional[str] = None
    subscription_tier: Optional[str] = None
    business_type: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "subscription_tier", "is_active")
    @classmethod
    def validate_not_cleared(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            raise ValueError(f"{info.field_name.replace('_', ' ').capitalize()} is required")
        return v
