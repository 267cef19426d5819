"""
Supabase Auth collaborator.

Password sign-in/sign-up, sign-out, token resolution, and the profile
lookup that turns an access token into a ``Caller``. Password flows run on
a dedicated anon-key client so the shared service-role client never holds a
user session.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from supabase import Client, create_client

from src.config import get_settings
from src.db import DatabaseClient
from src.errors import AuthenticationError, BackendError, PermissionDeniedError
from src.logging_config import get_logger
from src.schemas.user import SessionResponse, UserProfile, UserRole
from src.schemas.validation import parse_row
from src.services.collection_service import utc_now
from src.services.tenancy import Caller

logger = get_logger(__name__)

PROFILES_TABLE = "user_profiles"


def create_auth_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.auth_key)


class AuthService:
    def __init__(
        self,
        db: DatabaseClient,
        auth_client_factory: Optional[Callable[[], Client]] = None,
    ) -> None:
        self.db = db
        self._auth_client_factory = auth_client_factory or create_auth_client
        self._auth_client: Optional[Client] = None

    # -- Password flows --

    async def sign_in(self, email: str, password: str) -> SessionResponse:
        client = self._session_client()
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.warning("sign_in_failed", email=email, error=str(e))
            raise AuthenticationError("Invalid email or password", cause=e) from e

        session = getattr(response, "session", None)
        if session is None or response.user is None:
            logger.warning("sign_in_failed", email=email, error="no session returned")
            raise AuthenticationError("Invalid email or password")

        logger.info("user_signed_in", user_id=response.user.id)
        return _session_response(session, response.user.id)

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        organization_id: Optional[str] = None,
    ) -> UserProfile:
        """Register a new account and its ``user``-role profile."""
        client = self._session_client()
        try:
            response = client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": {"full_name": full_name}},
                }
            )
        except Exception as e:
            logger.warning("sign_up_failed", email=email, error=str(e))
            raise AuthenticationError(f"Sign up failed: {e}", cause=e) from e

        if response.user is None:
            raise AuthenticationError("Sign up failed: no user returned")

        row = await self.db.insert(
            PROFILES_TABLE,
            {
                "id": response.user.id,
                "email": email,
                "full_name": full_name,
                "organization_id": organization_id,
                "role": UserRole.USER.value,
                "is_active": True,
            },
        )
        logger.info("user_signed_up", user_id=response.user.id, organization_id=organization_id)
        return parse_row(UserProfile, PROFILES_TABLE, row)

    async def sign_out(self, access_token: Optional[str] = None) -> None:
        """Revoke ``access_token``, or end the session held by this service."""
        try:
            if access_token:
                self.db.auth.admin.sign_out(access_token)
            elif self._auth_client is not None:
                self._auth_client.auth.sign_out()
        except Exception as e:
            logger.error("sign_out_failed", error=str(e))
            raise BackendError("Sign out failed", cause=e) from e
        self._auth_client = None
        logger.info("user_signed_out")

    async def get_session(self) -> Optional[SessionResponse]:
        if self._auth_client is None:
            return None
        session = self._auth_client.auth.get_session()
        if session is None:
            return None
        return _session_response(session, session.user.id)

    # -- Token resolution --

    async def resolve_user(self, access_token: str) -> Any:
        """The auth user behind ``access_token``."""
        if not access_token:
            raise AuthenticationError("Missing access token")
        try:
            response = self.db.auth.get_user(access_token)
        except Exception as e:
            logger.warning("token_rejected", error=str(e))
            raise AuthenticationError("Invalid or expired access token", cause=e) from e

        if response is None or response.user is None:
            raise AuthenticationError("Invalid or expired access token")
        return response.user

    async def get_profile(self, user_id: str, *, email: str = "") -> UserProfile:
        """Load the user's profile, creating a minimal ``user`` profile when there is none."""
        row = await self.db.get(PROFILES_TABLE, user_id)
        if row is None:
            logger.info("profile_created_for_user", user_id=user_id)
            row = await self.db.insert(
                PROFILES_TABLE,
                {
                    "id": user_id,
                    "email": email,
                    "role": UserRole.USER.value,
                    "is_active": True,
                    "created_at": utc_now().isoformat(),
                },
            )
        return parse_row(UserProfile, PROFILES_TABLE, row)

    async def caller_for_token(self, access_token: str) -> Caller:
        user = await self.resolve_user(access_token)
        profile = await self.get_profile(user.id, email=getattr(user, "email", None) or "")
        if not profile.is_active:
            raise PermissionDeniedError("Account is deactivated", details={"user_id": profile.id})
        return Caller.from_profile(profile)

    def _session_client(self) -> Client:
        if self._auth_client is None:
            try:
                self._auth_client = self._auth_client_factory()
            except Exception as e:
                logger.error("auth_client_error", error=str(e))
                raise BackendError("Could not initialize auth client", cause=e) from e
        return self._auth_client


def _session_response(session: Any, user_id: str) -> SessionResponse:
    return SessionResponse(
        access_token=session.access_token,
        refresh_token=getattr(session, "refresh_token", None),
        expires_at=getattr(session, "expires_at", None),
        user_id=user_id,
    )
