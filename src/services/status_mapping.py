"""
Status Mapping.

Translates raw status codes coming from the backend into the enumerations
the dashboard works with, and display statuses back into backend codes for
writes. Lookups are fixed tables; unknown input is either reported
(strict mode, the default outside production) or logged and mapped to the
entity's initial status.
"""

from __future__ import annotations

from typing import Any, Optional

from src.config import get_settings
from src.errors import UnknownStatusError
from src.logging_config import get_logger
from src.schemas.appointment import AppointmentStatus
from src.schemas.call import (
    CALL_STATUS_BY_DISPLAY_STATUS,
    DISPLAY_STATUS_BY_CALL_STATUS,
    LEGACY_CALL_STATUS_ALIASES,
    CallDisplayStatus,
    CallStatus,
)

logger = get_logger(__name__)


def _strict(strict: Optional[bool]) -> bool:
    return get_settings().strict_mapping if strict is None else strict


def _unmapped(kind: str, raw: Any, fallback: Any, strict: Optional[bool]) -> Any:
    if _strict(strict):
        raise UnknownStatusError(kind, raw)
    logger.warning("unmapped_status", kind=kind, value=raw, fallback=fallback.value)
    return fallback


def parse_call_status(raw: Any, *, strict: Optional[bool] = None) -> CallStatus:
    """Resolve a stored or legacy call status code to ``CallStatus``."""
    if isinstance(raw, CallStatus):
        return raw
    value = str(raw).strip().lower() if raw is not None else ""
    try:
        return CallStatus(value)
    except ValueError:
        pass
    if value in LEGACY_CALL_STATUS_ALIASES:
        return LEGACY_CALL_STATUS_ALIASES[value]
    return _unmapped("call", raw, CallStatus.INITIATED, strict)


def map_call_status(raw: Any, *, strict: Optional[bool] = None) -> CallDisplayStatus:
    """Backend call status → dashboard display status."""
    if isinstance(raw, CallDisplayStatus):
        return raw
    # Unknown codes fall back to INITIATED, which displays as PENDING
    return DISPLAY_STATUS_BY_CALL_STATUS[parse_call_status(raw, strict=strict)]


def to_backend_call_status(raw: Any, *, strict: Optional[bool] = None) -> CallStatus:
    """
    Resolve a status given by a caller (display or backend vocabulary) for writes.

    Display values take precedence, so ``"completed"`` and ``"in_progress"``
    resolve the same way whichever vocabulary the caller meant.
    """
    if isinstance(raw, CallStatus):
        return raw
    value = str(raw).strip().lower() if raw is not None else ""
    try:
        return CALL_STATUS_BY_DISPLAY_STATUS[CallDisplayStatus(value)]
    except ValueError:
        return parse_call_status(raw, strict=strict)


def parse_appointment_status(raw: Any, *, strict: Optional[bool] = None) -> AppointmentStatus:
    """Resolve a stored appointment status code to ``AppointmentStatus``."""
    if isinstance(raw, AppointmentStatus):
        return raw
    value = str(raw).strip().lower() if raw is not None else ""
    if value == "no-show":
        value = AppointmentStatus.NO_SHOW.value
    try:
        return AppointmentStatus(value)
    except ValueError:
        return _unmapped("appointment", raw, AppointmentStatus.SCHEDULED, strict)
