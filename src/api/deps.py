"""
FastAPI dependencies: database, authenticated caller, per-request services.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.auth import AuthService
from src.db import DatabaseClient, get_db
from src.errors import AuthenticationError
from src.logging_config import organization_id_var, user_id_var
from src.realtime import ChangeFeed
from src.services.appointment_service import AppointmentService
from src.services.call_service import CallService
from src.services.organization_service import OrganizationService
from src.services.tenancy import Caller
from src.services.user_service import UserService

bearer_scheme = HTTPBearer(auto_error=False)


def get_database() -> DatabaseClient:
    return get_db()


def get_auth_service(db: DatabaseClient = Depends(get_database)) -> AuthService:
    return AuthService(db)


def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return credentials.credentials


async def get_caller(
    token: str = Depends(get_access_token),
    auth: AuthService = Depends(get_auth_service),
) -> Caller:
    caller = await auth.caller_for_token(token)
    user_id_var.set(caller.user_id)
    organization_id_var.set(caller.organization_id or "")
    return caller


def get_appointment_service(
    db: DatabaseClient = Depends(get_database),
    caller: Caller = Depends(get_caller),
) -> AppointmentService:
    return AppointmentService(db, caller)


def get_call_service(
    db: DatabaseClient = Depends(get_database),
    caller: Caller = Depends(get_caller),
) -> CallService:
    return CallService(db, caller)


def get_user_service(
    db: DatabaseClient = Depends(get_database),
    caller: Caller = Depends(get_caller),
) -> UserService:
    return UserService(db, caller)


def get_organization_service(
    db: DatabaseClient = Depends(get_database),
    caller: Caller = Depends(get_caller),
) -> OrganizationService:
    return OrganizationService(db, caller)


def get_feed(connection: HTTPConnection) -> ChangeFeed:
    return connection.app.state.feed
