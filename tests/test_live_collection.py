"""Tests for live collections: snapshot, realtime events, scoping and cancellation."""

from __future__ import annotations

import pytest

from src.errors import BackendError, UnknownChangeEventError
from src.schemas.appointment import AppointmentStatus
from src.services.live_collection import LiveCollection
from src.services.reconciler import APPOINTMENTS
from src.services.statistics import compute_appointment_stats
from src.services.tenancy import AccessPolicy


def payload(event_type, record=None, old=None):
    return {"data": {"type": event_type, "table": "appointments", "record": record, "old_record": old}}


@pytest.fixture
def collection(agent_a):
    return LiveCollection(APPOINTMENTS, AccessPolicy(agent_a), compute_appointment_stats, strict=True)


class TestSnapshot:
    def test_replace_sorts_and_computes_stats(self, collection, make_appointment_row):
        collection.replace([
            make_appointment_row(id="b", scheduled_at="2024-01-17T09:00:00+00:00"),
            make_appointment_row(id="a", scheduled_at="2024-01-16T09:00:00+00:00", status="completed"),
        ])

        assert collection.loaded
        assert [r.id for r in collection.records] == ["a", "b"]
        assert collection.stats.total == 2
        assert collection.stats.completed == 1

    def test_replace_drops_rows_from_other_orgs(self, collection, make_appointment_row):
        collection.replace([make_appointment_row(id="mine"), make_appointment_row(id="theirs", organization_id="org-b")])
        assert [r.id for r in collection.records] == ["mine"]


class TestRealtimeEvents:
    def test_insert_update_delete(self, collection, make_appointment_row):
        collection.replace([])

        assert collection.apply_payload(payload("INSERT", make_appointment_row(id="a1")))
        assert collection.stats.scheduled == 1

        assert collection.apply_payload(payload("UPDATE", {"id": "a1", "status": "confirmed"}))
        assert collection.records[0].status == AppointmentStatus.CONFIRMED
        assert collection.stats.confirmed == 1

        assert collection.apply_payload(payload("DELETE", old={"id": "a1"}))
        assert collection.records == ()
        assert collection.stats.total == 0

    def test_delete_unknown_id_reports_no_change(self, collection, make_appointment_row):
        collection.replace([make_appointment_row(id="a1")])
        assert collection.apply_payload(payload("DELETE", old={"id": "nope"})) is False
        assert len(collection) == 1

    def test_foreign_org_insert_is_dropped(self, collection, make_appointment_row):
        collection.replace([])
        changed = collection.apply_payload(payload("INSERT", make_appointment_row(organization_id="org-b")))
        assert changed is False
        assert collection.records == ()

    def test_listeners_notified_on_change_only(self, collection, make_appointment_row):
        collection.replace([])
        seen = []
        remove = collection.add_listener(lambda c: seen.append(len(c)))

        collection.apply_payload(payload("INSERT", make_appointment_row(id="a1")))
        collection.apply_payload(payload("DELETE", old={"id": "unknown"}))
        remove()
        collection.apply_payload(payload("DELETE", old={"id": "a1"}))

        assert seen == [1]

    def test_unknown_event_strict(self, collection):
        with pytest.raises(UnknownChangeEventError):
            collection.apply_payload(payload("TRUNCATE"))

    def test_unknown_event_permissive(self, agent_a):
        collection = LiveCollection(APPOINTMENTS, AccessPolicy(agent_a), compute_appointment_stats, strict=False)
        collection.replace([])
        assert collection.apply_payload(payload("TRUNCATE")) is False

    def test_record_moved_to_other_org_leaves_the_view(self, collection, make_appointment_row):
        collection.replace([make_appointment_row(id="a1"), make_appointment_row(id="a2")])

        changed = collection.apply_payload(payload("UPDATE", {"id": "a1", "organization_id": "org-b"}))

        assert changed is True
        assert [r.id for r in collection.records] == ["a2"]
        assert collection.stats.total == 1

    def test_same_update_twice(self, collection, make_appointment_row):
        collection.replace([make_appointment_row(id="a1")])
        event = payload("UPDATE", {"id": "a1", "status": "confirmed"})

        assert collection.apply_payload(event)
        first = collection.records
        collection.apply_payload(event)

        assert collection.records == first
        assert collection.stats.confirmed == 1

    def test_confirmed_then_completed(self, collection, make_appointment_row):
        collection.replace([make_appointment_row(id="a1")])

        collection.apply_payload(payload("UPDATE", {"id": "a1", "status": "confirmed"}))
        collection.apply_payload(payload("UPDATE", {"id": "a1", "status": "completed"}))

        assert collection.records[0].status == AppointmentStatus.COMPLETED
        assert collection.stats.completed == 1
        assert collection.stats.confirmed == 0

    def test_malformed_fetch_row(self, collection, make_appointment_row):
        with pytest.raises(BackendError):
            collection.replace([make_appointment_row(id="a1"), {"id": "bad", "organization_id": "org-a"}])

        assert not collection.loaded
        assert collection.records == ()


class TestCancellation:
    def test_closed_collection_ignores_events(self, collection, make_appointment_row):
        collection.replace([make_appointment_row(id="a1")])
        collection.close()

        assert collection.apply_payload(payload("INSERT", make_appointment_row(id="a2"))) is False
        assert [r.id for r in collection.records] == ["a1"]

    def test_closed_collection_ignores_late_fetch(self, collection, make_appointment_row):
        collection.close()
        collection.replace([make_appointment_row()])

        assert collection.records == ()
        assert not collection.loaded
