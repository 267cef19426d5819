"""
Data models for appointments and their aggregate statistics.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from src.config import get_settings


class AppointmentStatus(str, Enum):
    """
    Appointment lifecycle status.

    Flow: scheduled → confirmed → completed
              ↘ completed
              ↘ cancelled / no_show (from scheduled or confirmed)
    """

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


def can_transition(current: AppointmentStatus, requested: AppointmentStatus) -> bool:
    """Staff-initiated transitions only; re-applying the current status is allowed."""
    return requested == current or requested in APPOINTMENT_TRANSITIONS[current]


class Appointment(BaseModel):
    """Canonical appointment record, as held in memory and returned by the API."""

    model_config = ConfigDict(frozen=True)

    id: str
    organization_id: str
    scheduled_at: datetime
    duration_minutes: int = 30
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    service_type: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    reminders_sent_at: tuple[datetime, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("scheduled_at", "created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return None if v is None else _as_utc(v)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def reminder_sent(self) -> bool:
        return len(self.reminders_sent_at) > 0


# ── Input validation ─────────────────────────────────────────────


def _check_name(value: str) -> str:
    value = value.strip()
    if len(value) < 2:
        raise ValueError("Customer name must be at least 2 characters")
    return value


def _check_phone(value: str) -> str:
    value = value.strip()
    if sum(ch.isdigit() for ch in value) < 10:
        raise ValueError("Phone number must be at least 10 digits")
    return value


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValueError("Invalid email address") from e


def _check_duration(value: int) -> int:
    minimum = get_settings().min_appointment_duration_minutes
    if value < minimum:
        raise ValueError(f"Duration must be at least {minimum} minutes")
    return value


def _required(value: Any, label: str) -> Any:
    # Edits may omit a column but never clear it
    if value is None:
        raise ValueError(f"{label} is required")
    return value


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _combine_date_and_time(data: Any) -> Any:
    """Accept the booking form's separate date and time fields."""
    if not isinstance(data, dict) or data.get("scheduled_at"):
        return data
    day, clock = data.get("scheduled_date"), data.get("scheduled_time")
    if day and clock:
        data = {**data, "scheduled_at": f"{day}T{clock}"}
    return data


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    scheduled_at: datetime
    duration_minutes: int = Field(default_factory=lambda: get_settings().default_appointment_duration_minutes)
    service_type: Optional[str] = None
    notes: Optional[str] = None
    organization_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def combine_date_and_time(cls, data: Any) -> Any:
        return _combine_date_and_time(data)

    @field_validator("customer_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _check_phone(v)

    @field_validator("customer_email")
    @classmethod
    def validate_customer_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        return _check_duration(v)

    @field_validator("scheduled_at")
    @classmethod
    def validate_scheduled(cls, v: datetime) -> datetime:
        return _as_utc(v)


class AppointmentUpdate(BaseModel):
    """Partial edit of appointment details; status changes go through their own endpoint."""

    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    service_type: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def combine_date_and_time(cls, data: Any) -> Any:
        return _combine_date_and_time(data)

    @field_validator("customer_name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> str:
        return _check_name(_required(v, "Customer name"))

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> str:
        return _check_phone(_required(v, "Phone number"))

    @field_validator("customer_email")
    @classmethod
    def validate_customer_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v: Optional[int]) -> int:
        return _check_duration(_required(v, "Duration"))

    @field_validator("scheduled_at")
    @classmethod
    def validate_scheduled(cls, v: Optional[datetime]) -> datetime:
        return _as_utc(_required(v, "Scheduled time"))


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    notes: Optional[str] = None


class AppointmentStats(BaseModel):
    """Per-status projection of an appointment collection."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    scheduled: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
    no_show: int = 0
    reminders_sent: int = 0
    completion_rate: float = 0.0
    cancellation_rate: float = 0.0
