"""
Dashboard error hierarchy.

Every failure raised by the data-access layer is a ``DashboardError``.
Each subclass carries the HTTP status the API should answer with, a stable
machine-readable code, and optional structured details, so routers never
have to translate exceptions by hand.
"""

from __future__ import annotations

from typing import Any


class DashboardError(Exception):
    """Base class for all dashboard errors."""

    status_code: int = 500
    error_code: str = "DASHBOARD_ERROR"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to an API-friendly dictionary."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        parts = [f"{self.error_code}: {self.message}"]
        if self.details:
            parts.append(f"details={self.details}")
        if self.cause:
            parts.append(f"cause={self.cause}")
        return " | ".join(parts)


# =============================================================================
# Caller-side errors
# =============================================================================


class ValidationError(DashboardError):
    """Input rejected before any backend call was made."""

    status_code = 422
    error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field_errors: dict[str, str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.field_errors = field_errors or {}
        merged = dict(details or {})
        if self.field_errors:
            merged["fields"] = self.field_errors
        super().__init__(message, details=merged)


class InvalidTransitionError(ValidationError):
    """A lifecycle transition that the entity's state machine forbids."""

    error_code = "INVALID_TRANSITION"

    def __init__(self, entity: str, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot move {entity} from '{current}' to '{requested}'",
            details={"entity": entity, "current": current, "requested": requested},
        )


class AuthenticationError(DashboardError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    error_code = "AUTHENTICATION_ERROR"


class PermissionDeniedError(DashboardError):
    """The caller's role or organization does not allow the operation."""

    status_code = 403
    error_code = "PERMISSION_DENIED"


class NotFoundError(DashboardError):
    """The requested record does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, entity: str, record_id: str) -> None:
        super().__init__(
            f"{entity.capitalize()} not found",
            details={"entity": entity, "id": record_id},
        )


# =============================================================================
# Backend and data errors
# =============================================================================


class BackendError(DashboardError):
    """The backend store rejected or failed an operation."""

    status_code = 502
    error_code = "BACKEND_ERROR"


class UnknownStatusError(DashboardError):
    """A status value outside the known enumerations (strict mode only)."""

    error_code = "UNKNOWN_STATUS"

    def __init__(self, kind: str, value: Any) -> None:
        super().__init__(
            f"Unmapped {kind} status: {value!r}",
            details={"kind": kind, "value": value},
        )


class UnknownChangeEventError(DashboardError):
    """A realtime change event with an unrecognized tag (strict mode only)."""

    error_code = "UNKNOWN_CHANGE_EVENT"

    def __init__(self, tag: Any) -> None:
        super().__init__(
            f"Unknown change event type: {tag!r}",
            details={"tag": tag},
        )
