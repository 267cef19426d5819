"""
Row adapters.

Rows reach the dashboard from several writers (current schema, older
dashboard builds, realtime payloads) with different column names for the
same facts. These functions are the only place those shapes are
reconciled: everything past them works with the canonical ``Appointment``
and ``Call`` models.

``*_fields`` functions return only the canonical fields actually present
in the row, so they can be merged onto an existing record without
clobbering values the row did not carry.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from src.schemas.appointment import Appointment
from src.schemas.call import Call
from src.services.status_mapping import parse_appointment_status, parse_call_status

_APPOINTMENT_PASSTHROUGH = (
    "duration_minutes",
    "customer_name",
    "customer_phone",
    "customer_email",
    "service_type",
    "notes",
    "created_at",
    "updated_at",
)

_CALL_PASSTHROUGH = (
    "caller_name",
    "caller_phone",
    "notes",
    "assigned_agent",
    "transcript",
    "ai_summary",
    "created_at",
    "updated_at",
)

# canonical name -> older column names, first present wins
_APPOINTMENT_ALIASES = {
    "organization_id": ("organization_id", "client_id"),
}

_CALL_ALIASES = {
    "organization_id": ("organization_id", "client_id"),
    "direction": ("direction", "call_type"),
    "outcome": ("outcome", "call_outcome"),
    "started_at": ("started_at", "start_time"),
    "ended_at": ("ended_at", "end_time"),
    "duration_seconds": ("duration_seconds", "duration"),
}


def _first(row: Mapping[str, Any], names: tuple[str, ...]) -> tuple[bool, Any]:
    for name in names:
        if name in row:
            return True, row[name]
    return False, None


def _copy_aliases(row: Mapping[str, Any], aliases: dict[str, tuple[str, ...]], out: dict[str, Any]) -> None:
    for canonical, names in aliases.items():
        found, value = _first(row, names)
        if found:
            out[canonical] = value


def appointment_fields(row: Mapping[str, Any], *, strict: Optional[bool] = None) -> dict[str, Any]:
    fields: dict[str, Any] = {k: row[k] for k in _APPOINTMENT_PASSTHROUGH if k in row}
    if "id" in row:
        fields["id"] = str(row["id"])
    _copy_aliases(row, _APPOINTMENT_ALIASES, fields)
    if fields.get("organization_id") is not None:
        fields["organization_id"] = str(fields["organization_id"])

    if row.get("scheduled_at"):
        fields["scheduled_at"] = row["scheduled_at"]
    elif row.get("appointment_date") and row.get("appointment_time"):
        fields["scheduled_at"] = f"{row['appointment_date']}T{row['appointment_time']}"

    found, status = _first(row, ("status", "appointment_status"))
    if found:
        fields["status"] = parse_appointment_status(status, strict=strict)

    if "reminders_sent_at" in row:
        fields["reminders_sent_at"] = tuple(row["reminders_sent_at"] or ())
    elif "reminder_sent" in row:
        if row["reminder_sent"]:
            sent_at = row.get("updated_at") or row.get("created_at") or datetime.now(timezone.utc)
            fields["reminders_sent_at"] = (sent_at,)
        else:
            fields["reminders_sent_at"] = ()

    return fields


def appointment_from_row(row: Mapping[str, Any], *, strict: Optional[bool] = None) -> Appointment:
    return Appointment.model_validate(appointment_fields(row, strict=strict))


def call_fields(row: Mapping[str, Any], *, strict: Optional[bool] = None) -> dict[str, Any]:
    fields: dict[str, Any] = {k: row[k] for k in _CALL_PASSTHROUGH if k in row}
    if "id" in row:
        fields["id"] = str(row["id"])
    _copy_aliases(row, _CALL_ALIASES, fields)
    if fields.get("organization_id") is not None:
        fields["organization_id"] = str(fields["organization_id"])

    found, status = _first(row, ("status", "call_status"))
    if found:
        fields["status"] = parse_call_status(status, strict=strict)

    return fields


def call_from_row(row: Mapping[str, Any], *, strict: Optional[bool] = None) -> Call:
    fields = call_fields(row, strict=strict)
    if not fields.get("created_at"):
        fields["created_at"] = fields.get("started_at") or datetime.now(timezone.utc)
    return Call.model_validate(fields)
