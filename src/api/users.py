"""
API Router — User Management Endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.api.deps import get_user_service
from src.schemas.user import RoleUpdate, UserProfile
from src.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/", response_model=list[UserProfile])
async def list_users(service: UserService = Depends(get_user_service)) -> list[UserProfile]:
    return await service.list()


@router.post("/{user_id}/toggle-active", response_model=UserProfile)
async def toggle_user_active(
    user_id: str,
    service: UserService = Depends(get_user_service),
) -> UserProfile:
    """Activate a deactivated user or deactivate an active one."""
    return await service.toggle_active(user_id)


@router.patch("/{user_id}/role", response_model=UserProfile)
async def update_user_role(
    user_id: str,
    body: RoleUpdate,
    service: UserService = Depends(get_user_service),
) -> UserProfile:
    return await service.update_role(user_id, body.role)
