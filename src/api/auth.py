"""
API Router — Authentication Endpoints.

Thin wrappers over Supabase Auth. Clients keep the returned access token and
send it as ``Authorization: Bearer <token>`` on every other request.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from src.api.deps import get_access_token, get_auth_service
from src.auth import AuthService
from src.schemas.user import SessionResponse, SignInRequest, SignUpRequest, UserProfile

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(
    body: SignInRequest,
    auth: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    return await auth.sign_in(body.email, body.password)


@router.post("/sign-up", response_model=UserProfile, status_code=201)
async def sign_up(
    body: SignUpRequest,
    auth: AuthService = Depends(get_auth_service),
) -> UserProfile:
    return await auth.sign_up(body.email, body.password, body.full_name, body.organization_id)


@router.post("/sign-out", status_code=204)
async def sign_out(
    token: str = Depends(get_access_token),
    auth: AuthService = Depends(get_auth_service),
) -> Response:
    await auth.sign_out(token)
    return Response(status_code=204)


@router.get("/me", response_model=UserProfile)
async def me(
    token: str = Depends(get_access_token),
    auth: AuthService = Depends(get_auth_service),
) -> UserProfile:
    """Profile of the token's user, created on first sight."""
    user = await auth.resolve_user(token)
    return await auth.get_profile(user.id, email=getattr(user, "email", None) or "")
