"""
Appointment Service.

Booking, editing, status changes, reminders and deletion for the caller's
appointments, plus the live appointment collection (ordered by scheduled
time) and its statistics.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from src.config import get_settings
from src.db import DatabaseClient
from src.errors import InvalidTransitionError, ValidationError
from src.logging_config import get_logger
from src.schemas.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStats,
    AppointmentStatus,
    AppointmentUpdate,
    can_transition,
)
from src.schemas.validation import validate_payload
from src.services.collection_service import CollectionService, utc_now
from src.services.reconciler import APPOINTMENTS
from src.services.statistics import compute_appointment_stats
from src.services.tenancy import Caller

logger = get_logger(__name__)

REMINDABLE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})


class AppointmentService(CollectionService[Appointment, AppointmentStats]):
    entity = "appointment"

    def __init__(self, db: DatabaseClient, caller: Caller, *, strict: Optional[bool] = None) -> None:
        super().__init__(
            db,
            caller,
            APPOINTMENTS,
            compute_appointment_stats,
            limit=get_settings().appointment_fetch_limit,
            strict=strict,
        )

    @property
    def order_column(self) -> str:
        return "scheduled_at"

    async def create(self, data: Union[AppointmentCreate, dict[str, Any]]) -> Appointment:
        """Book an appointment in ``scheduled`` state for the caller's organization."""
        booking = data if isinstance(data, AppointmentCreate) else validate_payload(AppointmentCreate, data)
        organization_id = self.policy.organization_for_create(booking.organization_id)

        payload = {
            **booking.model_dump(mode="json", exclude={"organization_id"}),
            "organization_id": organization_id,
            "status": AppointmentStatus.SCHEDULED.value,
            "reminders_sent_at": [],
        }
        row = await self.db.insert(self.spec.table, payload)
        appointment = self.spec.parse(row, strict=self.strict)

        logger.info(
            "appointment_created",
            appointment_id=appointment.id,
            organization_id=organization_id,
            scheduled_at=appointment.scheduled_at.isoformat(),
        )
        await self._refresh_after_mutation()
        return appointment

    async def update(
        self,
        appointment_id: str,
        changes: Union[AppointmentUpdate, dict[str, Any]],
    ) -> Appointment:
        """Edit booking details; status is changed through ``update_status``."""
        edit = changes if isinstance(changes, AppointmentUpdate) else validate_payload(AppointmentUpdate, changes)
        updates = edit.model_dump(mode="json", exclude_unset=True)
        if not updates:
            raise ValidationError("No changes supplied")

        await self._fetch_guarded(appointment_id, "update")
        appointment = await self._update_guarded(appointment_id, updates)

        logger.info("appointment_updated", appointment_id=appointment_id, fields=sorted(updates))
        await self._refresh_after_mutation()
        return appointment

    async def update_status(
        self,
        appointment_id: str,
        status: Union[AppointmentStatus, str],
        notes: Optional[str] = None,
    ) -> Appointment:
        try:
            requested = AppointmentStatus(status)
        except ValueError:
            raise ValidationError(
                field_errors={"status": f"Unknown appointment status '{status}'"}
            ) from None

        current = await self._fetch_guarded(appointment_id, "update")
        if not can_transition(current.status, requested):
            raise InvalidTransitionError(self.entity, current.status.value, requested.value)

        updates: dict[str, Any] = {"status": requested.value}
        if notes:
            updates["notes"] = notes
        appointment = await self._update_guarded(appointment_id, updates)

        logger.info(
            "appointment_status_changed",
            appointment_id=appointment_id,
            from_status=current.status.value,
            to_status=requested.value,
        )
        await self._refresh_after_mutation()
        return appointment

    async def send_reminder(self, appointment_id: str) -> Appointment:
        """Record that a reminder went out; ``reminder_sent`` follows from the timestamp list."""
        current = await self._fetch_guarded(appointment_id, "update")
        if current.status not in REMINDABLE_STATUSES:
            raise ValidationError(
                f"Cannot send a reminder for a {current.status.value} appointment",
                details={"status": current.status.value},
            )

        sent_at = [ts.isoformat() for ts in current.reminders_sent_at]
        sent_at.append(utc_now().isoformat())
        appointment = await self._update_guarded(appointment_id, {"reminders_sent_at": sent_at})

        logger.info("appointment_reminder_sent", appointment_id=appointment_id, reminders=len(sent_at))
        await self._refresh_after_mutation()
        return appointment
