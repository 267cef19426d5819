"""
Aggregate statistics for appointment and call collections.

Both functions are pure: the same snapshot always produces the same
stats, and every status count comes from one pass over the snapshot so
the per-status counts always add up to ``total``.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from src.schemas.appointment import Appointment, AppointmentStats, AppointmentStatus
from src.schemas.call import (
    APPOINTMENT_BOOKED_OUTCOME,
    Call,
    CallDirection,
    CallDisplayStatus,
    CallStats,
)


def ratio(part: int, total: int) -> float:
    """``part / total`` with an empty collection counting as 0."""
    if total <= 0:
        return 0.0
    return part / total


def compute_appointment_stats(appointments: Iterable[Appointment]) -> AppointmentStats:
    items = list(appointments)
    total = len(items)
    by_status = Counter(a.status for a in items)
    completed = by_status[AppointmentStatus.COMPLETED]

    return AppointmentStats(
        total=total,
        scheduled=by_status[AppointmentStatus.SCHEDULED],
        confirmed=by_status[AppointmentStatus.CONFIRMED],
        completed=completed,
        cancelled=by_status[AppointmentStatus.CANCELLED],
        no_show=by_status[AppointmentStatus.NO_SHOW],
        reminders_sent=sum(1 for a in items if a.reminder_sent),
        completion_rate=ratio(completed, total),
        cancellation_rate=ratio(
            by_status[AppointmentStatus.CANCELLED] + by_status[AppointmentStatus.NO_SHOW],
            total,
        ),
    )


def compute_call_stats(calls: Iterable[Call]) -> CallStats:
    items = list(calls)
    total = len(items)
    by_status = Counter(c.display_status for c in items)
    by_direction = Counter(c.direction for c in items)
    completed = by_status[CallDisplayStatus.COMPLETED]
    booked = sum(1 for c in items if c.outcome == APPOINTMENT_BOOKED_OUTCOME)

    # Calls without a duration still count in the divisor
    total_duration = sum(c.duration or 0 for c in items)

    return CallStats(
        total=total,
        pending=by_status[CallDisplayStatus.PENDING],
        in_progress=by_status[CallDisplayStatus.IN_PROGRESS],
        completed=completed,
        missed=by_status[CallDisplayStatus.MISSED],
        voicemail=by_status[CallDisplayStatus.VOICEMAIL],
        inbound=by_direction[CallDirection.INBOUND],
        outbound=by_direction[CallDirection.OUTBOUND],
        success_rate=ratio(completed, total),
        conversion_rate=ratio(booked, total),
        average_duration_seconds=total_duration / total if total else 0.0,
    )
