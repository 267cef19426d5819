"""Tests for row adapters, change events and the change reducer."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.errors import BackendError, UnknownChangeEventError
from src.schemas.appointment import AppointmentStatus
from src.schemas.call import CallDirection, CallStatus
from src.schemas.events import ChangeEvent, ChangeType
from src.services.adapters import appointment_from_row, call_from_row
from src.services.reconciler import APPOINTMENTS, CALLS, apply_change


def insert(record):
    return ChangeEvent(type=ChangeType.INSERT, record=record)


def update(record):
    return ChangeEvent(type=ChangeType.UPDATE, record=record)


def delete(record_id):
    return ChangeEvent(type=ChangeType.DELETE, old_record={"id": record_id})


# ============================================================================
# Adapters
# ============================================================================


class TestLegacyAdapters:
    def test_legacy_appointment_columns(self):
        appointment = appointment_from_row(
            {
                "id": 7,
                "client_id": 3,
                "appointment_date": "2024-01-15",
                "appointment_time": "14:30",
                "customer_name": "John Doe",
                "customer_phone": "1234567890",
                "appointment_status": "confirmed",
                "reminder_sent": True,
                "updated_at": "2024-01-14T10:00:00+00:00",
            }
        )

        assert appointment.id == "7"
        assert appointment.organization_id == "3"
        assert appointment.scheduled_at == datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc)
        assert appointment.status == AppointmentStatus.CONFIRMED
        assert appointment.reminder_sent is True
        assert appointment.reminders_sent_at == (datetime(2024, 1, 14, 10, 0, tzinfo=timezone.utc),)

    def test_legacy_call_columns(self):
        call = call_from_row(
            {
                "id": "c1",
                "client_id": "org-a",
                "call_type": "outbound",
                "call_outcome": "appointment_booked",
                "start_time": "2024-01-15T09:00:00Z",
                "end_time": "2024-01-15T09:02:00Z",
                "call_status": "in_progress",
            }
        )

        assert call.organization_id == "org-a"
        assert call.direction == CallDirection.OUTBOUND
        assert call.outcome == "appointment_booked"
        assert call.status == CallStatus.ANSWERED
        assert call.duration == 120
        # created_at falls back to the start time
        assert call.created_at == call.started_at


# ============================================================================
# Change events
# ============================================================================


class TestChangeEventParsing:
    def test_python_client_shape(self):
        event = ChangeEvent.from_payload(
            {"data": {"type": "UPDATE", "table": "calls", "record": {"id": "1"}, "old_record": {"id": "1"}}}
        )
        assert event.type == ChangeType.UPDATE
        assert event.table == "calls"
        assert event.record_id == "1"

    def test_js_client_shape(self):
        event = ChangeEvent.from_payload({"eventType": "DELETE", "new": {}, "old": {"id": "9"}})
        assert event.type == ChangeType.DELETE
        assert event.record_id == "9"

    def test_unknown_tag(self):
        with pytest.raises(UnknownChangeEventError) as exc_info:
            ChangeEvent.from_payload({"data": {"type": "TRUNCATE"}})
        assert exc_info.value.details["tag"] == "TRUNCATE"


# ============================================================================
# Reducer
# ============================================================================


class TestApplyChange:
    def test_insert_keeps_appointments_ordered(self, make_appointment_row):
        late = appointment_from_row(make_appointment_row(id="late", scheduled_at="2024-01-20T10:00:00+00:00"))
        early_row = make_appointment_row(id="early", scheduled_at="2024-01-16T10:00:00+00:00")

        records = apply_change((late,), insert(early_row), APPOINTMENTS)

        assert [r.id for r in records] == ["early", "late"]

    def test_insert_keeps_calls_newest_first(self, make_call_row):
        older = call_from_row(make_call_row(id="older", created_at="2024-01-15T09:00:00+00:00"))
        newer_row = make_call_row(id="newer", created_at="2024-01-15T10:00:00+00:00")

        records = apply_change((older,), insert(newer_row), CALLS)

        assert [r.id for r in records] == ["newer", "older"]

    def test_duplicate_insert_replaces(self, make_appointment_row):
        row = make_appointment_row(id="a1")
        records = apply_change((), insert(row), APPOINTMENTS)
        records = apply_change(records, insert({**row, "notes": "again"}), APPOINTMENTS)

        assert len(records) == 1
        assert records[0].notes == "again"

    def test_update_merges_partial_record(self, make_appointment_row):
        original = appointment_from_row(make_appointment_row(id="a1", notes="keep me"))

        records = apply_change((original,), update({"id": "a1", "status": "confirmed"}), APPOINTMENTS)

        assert records[0].status == AppointmentStatus.CONFIRMED
        assert records[0].notes == "keep me"
        assert records[0].customer_name == original.customer_name

    def test_update_reorders_when_rescheduled(self, make_appointment_row):
        first = appointment_from_row(make_appointment_row(id="a", scheduled_at="2024-01-16T09:00:00+00:00"))
        second = appointment_from_row(make_appointment_row(id="b", scheduled_at="2024-01-17T09:00:00+00:00"))

        records = apply_change(
            (first, second),
            update({"id": "a", "scheduled_at": "2024-01-18T09:00:00+00:00"}),
            APPOINTMENTS,
        )

        assert [r.id for r in records] == ["b", "a"]

    def test_update_unknown_id_is_noop(self, make_appointment_row):
        records = (appointment_from_row(make_appointment_row(id="a1")),)
        assert apply_change(records, update({"id": "zzz", "status": "completed"}), APPOINTMENTS) is records

    def test_delete_removes_record(self, make_call_row):
        records = tuple(call_from_row(make_call_row(id=i)) for i in ("c1", "c2"))
        remaining = apply_change(records, delete("c1"), CALLS)
        assert [r.id for r in remaining] == ["c2"]

    def test_delete_unknown_id_returns_same_snapshot(self, make_call_row):
        records = (call_from_row(make_call_row(id="c1")),)
        assert apply_change(records, delete("missing"), CALLS) is records

    def test_insert_is_idempotent(self, make_call_row):
        row = make_call_row(id="c1")
        once = apply_change((), insert(row), CALLS)
        twice = apply_change(once, insert(row), CALLS)
        assert once == twice

    def test_back_to_back_updates_compose(self, make_appointment_row):
        """Two updates to one record delivered in quick succession both survive."""
        records = (appointment_from_row(make_appointment_row(id="a1")),)

        records = apply_change(records, update({"id": "a1", "status": "confirmed"}), APPOINTMENTS)
        records = apply_change(records, update({"id": "a1", "notes": "bring x-rays"}), APPOINTMENTS)

        assert records[0].status == AppointmentStatus.CONFIRMED
        assert records[0].notes == "bring x-rays"

    def test_update_is_idempotent(self, make_appointment_row):
        records = (appointment_from_row(make_appointment_row(id="a1")),)
        event = update({"id": "a1", "status": "confirmed", "notes": "call ahead"})

        once = apply_change(records, event, APPOINTMENTS)
        twice = apply_change(once, event, APPOINTMENTS)

        assert once == twice

    def test_confirmed_then_completed(self, make_appointment_row):
        records = (appointment_from_row(make_appointment_row(id="a1")),)

        records = apply_change(records, update({"id": "a1", "status": "confirmed"}), APPOINTMENTS)
        records = apply_change(records, update({"id": "a1", "status": "completed"}), APPOINTMENTS)

        assert records[0].status == AppointmentStatus.COMPLETED

    def test_malformed_insert_is_a_backend_error(self):
        with pytest.raises(BackendError) as exc_info:
            apply_change((), insert({"id": "x", "organization_id": "org-a"}), APPOINTMENTS)

        assert exc_info.value.details["id"] == "x"
        assert "customer_name" in exc_info.value.details["fields"]

    def test_update_that_breaks_record_is_a_backend_error(self, make_appointment_row):
        records = (appointment_from_row(make_appointment_row(id="a1")),)
        with pytest.raises(BackendError):
            apply_change(records, update({"id": "a1", "customer_name": None}), APPOINTMENTS)
