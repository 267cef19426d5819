"""Tests for call and appointment status mapping."""

from __future__ import annotations

import pytest

from src.errors import UnknownStatusError
from src.schemas.appointment import AppointmentStatus
from src.schemas.call import (
    CALL_STATUS_BY_DISPLAY_STATUS,
    DISPLAY_STATUS_BY_CALL_STATUS,
    CallDisplayStatus,
    CallStatus,
)
from src.services.status_mapping import (
    map_call_status,
    parse_appointment_status,
    parse_call_status,
    to_backend_call_status,
)


class TestCallStatusMapping:
    """Backend call status → display status."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("initiated", CallDisplayStatus.PENDING),
            ("ringing", CallDisplayStatus.PENDING),
            ("answered", CallDisplayStatus.IN_PROGRESS),
            ("completed", CallDisplayStatus.COMPLETED),
            ("failed", CallDisplayStatus.MISSED),
            ("busy", CallDisplayStatus.MISSED),
            ("no_answer", CallDisplayStatus.VOICEMAIL),
        ],
    )
    def test_every_backend_status_maps(self, raw, expected):
        assert map_call_status(raw) == expected

    def test_mapping_is_total(self):
        """Every backend status has exactly one display status."""
        assert set(DISPLAY_STATUS_BY_CALL_STATUS) == set(CallStatus)

    def test_mapping_is_stable(self):
        assert all(map_call_status(s) == map_call_status(s.value) for s in CallStatus)

    def test_display_round_trip(self):
        """Writing a display status and reading it back shows the same display status."""
        for display, backend in CALL_STATUS_BY_DISPLAY_STATUS.items():
            assert DISPLAY_STATUS_BY_CALL_STATUS[backend] == display

    @pytest.mark.parametrize(
        "legacy, expected",
        [
            ("queued", CallStatus.INITIATED),
            ("in_progress", CallStatus.ANSWERED),
            ("transferred", CallStatus.COMPLETED),
            ("voicemail", CallStatus.NO_ANSWER),
        ],
    )
    def test_legacy_codes_are_accepted(self, legacy, expected):
        assert parse_call_status(legacy) == expected

    def test_case_and_whitespace_are_ignored(self):
        assert parse_call_status("  Answered ") == CallStatus.ANSWERED

    def test_unknown_status_raises_in_strict_mode(self):
        with pytest.raises(UnknownStatusError) as exc_info:
            map_call_status("exploded", strict=True)
        assert exc_info.value.details == {"kind": "call", "value": "exploded"}

    def test_unknown_status_falls_back_when_permissive(self):
        assert map_call_status("exploded", strict=False) == CallDisplayStatus.PENDING
        assert map_call_status(None, strict=False) == CallDisplayStatus.PENDING


class TestBackendStatusForWrites:
    """Caller-supplied statuses in either vocabulary."""

    def test_display_values_win(self):
        assert to_backend_call_status("in_progress") == CallStatus.ANSWERED
        assert to_backend_call_status("missed") == CallStatus.FAILED
        assert to_backend_call_status("voicemail") == CallStatus.NO_ANSWER

    def test_backend_values_pass_through(self):
        assert to_backend_call_status("busy") == CallStatus.BUSY
        assert to_backend_call_status(CallStatus.RINGING) == CallStatus.RINGING

    def test_unknown_value_raises(self):
        with pytest.raises(UnknownStatusError):
            to_backend_call_status("on_hold", strict=True)


class TestAppointmentStatusParsing:
    def test_known_statuses(self):
        for status in AppointmentStatus:
            assert parse_appointment_status(status.value) == status

    def test_hyphenated_no_show(self):
        assert parse_appointment_status("no-show") == AppointmentStatus.NO_SHOW

    def test_unknown_status_strict(self):
        with pytest.raises(UnknownStatusError):
            parse_appointment_status("rescheduled", strict=True)

    def test_unknown_status_permissive(self):
        assert parse_appointment_status("rescheduled", strict=False) == AppointmentStatus.SCHEDULED
