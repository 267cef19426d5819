"""
Data models for receptionist calls.

Calls are stored with a fine-grained telephony status and shown on the
dashboard with a coarser display status derived through a fixed table.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field, field_validator


class CallStatus(str, Enum):
    """Backend lifecycle status of a call."""

    INITIATED = "initiated"
    RINGING = "ringing"
    ANSWERED = "answered"
    COMPLETED = "completed"
    FAILED = "failed"
    BUSY = "busy"
    NO_ANSWER = "no_answer"


class CallDisplayStatus(str, Enum):
    """Coarse status shown on the dashboard."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MISSED = "missed"
    VOICEMAIL = "voicemail"


class CallDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


DISPLAY_STATUS_BY_CALL_STATUS: dict[CallStatus, CallDisplayStatus] = {
    CallStatus.INITIATED: CallDisplayStatus.PENDING,
    CallStatus.RINGING: CallDisplayStatus.PENDING,
    CallStatus.ANSWERED: CallDisplayStatus.IN_PROGRESS,
    CallStatus.COMPLETED: CallDisplayStatus.COMPLETED,
    CallStatus.FAILED: CallDisplayStatus.MISSED,
    CallStatus.BUSY: CallDisplayStatus.MISSED,
    CallStatus.NO_ANSWER: CallDisplayStatus.VOICEMAIL,
}

CALL_STATUS_BY_DISPLAY_STATUS: dict[CallDisplayStatus, CallStatus] = {
    CallDisplayStatus.PENDING: CallStatus.INITIATED,
    CallDisplayStatus.IN_PROGRESS: CallStatus.ANSWERED,
    CallDisplayStatus.COMPLETED: CallStatus.COMPLETED,
    CallDisplayStatus.MISSED: CallStatus.FAILED,
    CallDisplayStatus.VOICEMAIL: CallStatus.NO_ANSWER,
}

# Values written by older dashboard builds
LEGACY_CALL_STATUS_ALIASES: dict[str, CallStatus] = {
    "queued": CallStatus.INITIATED,
    "pending": CallStatus.INITIATED,
    "in_progress": CallStatus.ANSWERED,
    "transferred": CallStatus.COMPLETED,
    "missed": CallStatus.FAILED,
    "voicemail": CallStatus.NO_ANSWER,
}

TERMINAL_CALL_STATUSES = frozenset({
    CallStatus.COMPLETED,
    CallStatus.FAILED,
    CallStatus.BUSY,
    CallStatus.NO_ANSWER,
})

CALL_TRANSITIONS: dict[CallStatus, frozenset[CallStatus]] = {
    CallStatus.INITIATED: frozenset({
        CallStatus.RINGING,
        CallStatus.ANSWERED,
        CallStatus.COMPLETED,
        CallStatus.FAILED,
        CallStatus.BUSY,
        CallStatus.NO_ANSWER,
    }),
    CallStatus.RINGING: frozenset({
        CallStatus.ANSWERED,
        CallStatus.FAILED,
        CallStatus.BUSY,
        CallStatus.NO_ANSWER,
    }),
    CallStatus.ANSWERED: frozenset({CallStatus.COMPLETED, CallStatus.FAILED}),
    CallStatus.COMPLETED: frozenset(),
    CallStatus.FAILED: frozenset(),
    CallStatus.BUSY: frozenset(),
    CallStatus.NO_ANSWER: frozenset(),
}

APPOINTMENT_BOOKED_OUTCOME = "appointment_booked"


def can_transition(current: CallStatus, requested: CallStatus) -> bool:
    return requested == current or requested in CALL_TRANSITIONS[current]


class Call(BaseModel):
    """Canonical call record."""

    model_config = ConfigDict(frozen=True)

    id: str
    organization_id: str
    direction: CallDirection = CallDirection.INBOUND
    status: CallStatus = CallStatus.INITIATED
    caller_name: Optional[str] = None
    caller_phone: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    outcome: Optional[str] = None
    notes: Optional[str] = None
    assigned_agent: Optional[str] = None
    transcript: Optional[str] = None
    ai_summary: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("started_at", "ended_at", "created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_status(self) -> CallDisplayStatus:
        return DISPLAY_STATUS_BY_CALL_STATUS[self.status]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration(self) -> Optional[int]:
        """Stored duration, else derived from the start/end timestamps."""
        if self.duration_seconds is not None:
            return self.duration_seconds
        if self.started_at and self.ended_at:
            return max(0, int((self.ended_at - self.started_at).total_seconds()))
        return None


class CallCreate(BaseModel):
    """Schema for logging a new call."""

    caller_name: str
    caller_phone: str
    direction: CallDirection = CallDirection.INBOUND
    notes: Optional[str] = None
    assigned_agent: Optional[str] = None
    organization_id: Optional[str] = None

    @field_validator("caller_name")
    @classmethod
    def validate_caller_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Caller name is required")
        return v

    @field_validator("caller_phone")
    @classmethod
    def validate_caller_phone(cls, v: str) -> str:
        v = v.strip()
        if sum(ch.isdigit() for ch in v) < 7:
            raise ValueError("Phone number must be at least 7 digits")
        return v


class CallStatusUpdate(BaseModel):
    # Backend or display status; resolved by the status mapper
    status: str
    outcome: Optional[str] = None


class CallEnd(BaseModel):
    status: str = CallStatus.COMPLETED.value
    outcome: Optional[str] = None


class CallTransfer(BaseModel):
    agent: str
    reason: str = ""


class CallStats(BaseModel):
    """Per-display-status projection of a call collection."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    missed: int = 0
    voicemail: int = 0
    inbound: int = 0
    outbound: int = 0
    success_rate: float = 0.0
    conversion_rate: float = 0.0
    average_duration_seconds: float = 0.0
