"""Tests for the call data service."""

from __future__ import annotations

import pytest

from src.errors import BackendError, InvalidTransitionError, PermissionDeniedError, ValidationError
from src.schemas.call import CallDisplayStatus, CallStatus
from src.services.call_service import CallService

ORG_A = "org-a"
ORG_B = "org-b"


class TestCreate:
    @pytest.mark.asyncio
    async def test_new_call_is_initiated(self, db, agent_a):
        call = await CallService(db, agent_a).create({"caller_name": "Jane", "caller_phone": "555-0100"})

        assert call.status == CallStatus.INITIATED
        assert call.display_status == CallDisplayStatus.PENDING
        assert call.organization_id == ORG_A
        assert call.started_at is not None

    @pytest.mark.asyncio
    async def test_short_phone_rejected(self, db, agent_a):
        with pytest.raises(ValidationError) as exc_info:
            await CallService(db, agent_a).create({"caller_name": "Jane", "caller_phone": "555"})
        assert exc_info.value.field_errors == {"caller_phone": "Phone number must be at least 7 digits"}
        assert db.operations == []

    @pytest.mark.asyncio
    async def test_backend_failure_surfaces(self, db, agent_a):
        db.fail_with = BackendError("Failed to create calls record")
        with pytest.raises(BackendError):
            await CallService(db, agent_a).create({"caller_name": "Jane", "caller_phone": "5550100"})


class TestReads:
    @pytest.mark.asyncio
    async def test_newest_first_and_scoped(self, db, agent_a, make_call_row):
        db.seed(
            "calls",
            make_call_row(id="old", created_at="2024-01-15T08:00:00+00:00"),
            make_call_row(id="new", created_at="2024-01-15T12:00:00+00:00"),
            make_call_row(id="foreign", organization_id=ORG_B),
        )

        records = await CallService(db, agent_a).list()

        assert [r.id for r in records] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_fetch_limit(self, db, agent_a, make_call_row):
        db.seed("calls", *(make_call_row() for _ in range(60)))
        assert len(await CallService(db, agent_a).list()) == 50

    @pytest.mark.asyncio
    async def test_legacy_rows_load(self, db, agent_a):
        db.seed(
            "calls",
            {
                "id": "legacy",
                "organization_id": ORG_A,
                "call_type": "outbound",
                "call_status": "voicemail",
                "created_at": "2024-01-15T08:00:00+00:00",
            },
        )
        records = await CallService(db, agent_a).list()
        assert records[0].display_status == CallDisplayStatus.VOICEMAIL


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_display_status_accepted(self, db, agent_a, make_call_row):
        db.seed("calls", make_call_row(id="c1", status="ringing"))

        call = await CallService(db, agent_a).update_status("c1", "in_progress")

        assert call.status == CallStatus.ANSWERED
        assert db.row("calls", "c1")["status"] == "answered"

    @pytest.mark.asyncio
    async def test_terminal_status_sets_end_and_duration(self, db, agent_a, make_call_row):
        db.seed(
            "calls",
            make_call_row(id="c1", status="answered", duration_seconds=None, started_at="2024-01-15T09:00:00+00:00"),
        )

        call = await CallService(db, agent_a).update_status("c1", "completed", outcome="appointment_booked")

        assert call.ended_at is not None
        assert call.duration_seconds is not None and call.duration_seconds > 0
        assert call.outcome == "appointment_booked"

    @pytest.mark.asyncio
    async def test_unknown_status(self, db, agent_a, make_call_row):
        db.seed("calls", make_call_row(id="c1", status="initiated"))
        with pytest.raises(ValidationError) as exc_info:
            await CallService(db, agent_a).update_status("c1", "on_hold")
        assert "status" in exc_info.value.field_errors

    @pytest.mark.asyncio
    async def test_finished_call_cannot_restart(self, db, agent_a, make_call_row):
        db.seed("calls", make_call_row(id="c1", status="completed"))
        with pytest.raises(InvalidTransitionError):
            await CallService(db, agent_a).update_status("c1", "ringing")

    @pytest.mark.asyncio
    async def test_end_call_requires_terminal_status(self, db, agent_a, make_call_row):
        db.seed("calls", make_call_row(id="c1", status="answered"))
        with pytest.raises(ValidationError):
            await CallService(db, agent_a).end_call("c1", "ringing")

    @pytest.mark.asyncio
    async def test_end_call_defaults_to_completed(self, db, agent_a, make_call_row):
        db.seed("calls", make_call_row(id="c1", status="answered"))
        call = await CallService(db, agent_a).end_call("c1")
        assert call.status == CallStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_transfer_keeps_status(self, db, agent_a, make_call_row):
        db.seed("calls", make_call_row(id="c1", status="answered"))

        call = await CallService(db, agent_a).transfer("c1", "Dr. Smith", "billing question")

        assert call.status == CallStatus.ANSWERED
        assert call.assigned_agent == "Dr. Smith"
        assert call.outcome == "transferred: billing question"

    @pytest.mark.asyncio
    async def test_foreign_call_untouched(self, db, agent_a, make_call_row):
        db.seed("calls", make_call_row(id="x", organization_id=ORG_B, status="answered"))
        service = CallService(db, agent_a)

        with pytest.raises(PermissionDeniedError):
            await service.end_call("x")
        with pytest.raises(PermissionDeniedError):
            await service.transfer("x", "Agent")
        with pytest.raises(PermissionDeniedError):
            await service.delete("x")

        assert db.row("calls", "x")["status"] == "answered"

    @pytest.mark.asyncio
    async def test_status_change_refreshes_live_view(self, db, feed, agent_a, make_call_row):
        db.seed("calls", make_call_row(id="c1", status="answered"))
        service = CallService(db, agent_a)

        async with service.subscribe(feed) as live:
            await service.load()
            await service.end_call("c1", "missed")
            assert live.records[0].display_status == CallDisplayStatus.MISSED
            assert live.stats.missed == 1
