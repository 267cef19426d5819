"""
Appointment validation smoke test.

Runs the booking validation rules over a set of built-in cases and prints a
summary. With --api-url and --token the valid cases are also submitted to a
running API server.

Usage:
    python scripts/validate_appointments.py
    python scripts/validate_appointments.py --api-url http://localhost:8000 --token <access token>
"""

import argparse
import os
import sys
from typing import Any

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

import httpx

from src.errors import ValidationError
from src.logging_config import setup_logging, get_logger
from src.schemas.appointment import AppointmentCreate
from src.schemas.validation import validate_payload

setup_logging()
logger = get_logger(__name__)

BASE_BOOKING: dict[str, Any] = {
    "customer_name": "John Doe",
    "customer_phone": "1234567890",
    "customer_email": "john@example.com",
    "scheduled_date": "2024-01-15",
    "scheduled_time": "14:30",
    "duration_minutes": 30,
    "notes": "Follow-up appointment",
}

# (name, overrides, field expected to fail or None when the booking is valid)
CASES: list[tuple[str, dict[str, Any], str | None]] = [
    ("Valid appointment data", {}, None),
    ("Valid without email", {"customer_email": None}, None),
    ("Invalid email", {"customer_name": "Jane Doe", "customer_email": "invalid-email"}, "customer_email"),
    ("Short duration", {"customer_name": "Bob Smith", "duration_minutes": 5}, "duration_minutes"),
    ("Short name", {"customer_name": "J"}, "customer_name"),
    ("Short phone", {"customer_phone": "12345"}, "customer_phone"),
]


def run_case(overrides: dict[str, Any], expected_field: str | None) -> tuple[bool, str]:
    data = {**BASE_BOOKING, **overrides}
    try:
        validate_payload(AppointmentCreate, data)
    except ValidationError as e:
        if expected_field is None:
            return False, f"unexpected errors: {e.field_errors}"
        if expected_field not in e.field_errors:
            return False, f"expected an error on {expected_field}, got {e.field_errors}"
        return True, e.field_errors[expected_field]

    if expected_field is not None:
        return False, f"expected an error on {expected_field}, booking was accepted"
    return True, "accepted"


def submit(api_url: str, token: str, overrides: dict[str, Any]) -> tuple[bool, str]:
    response = httpx.post(
        f"{api_url.rstrip('/')}/appointments/",
        json={**BASE_BOOKING, **overrides},
        headers={"Authorization": f"Bearer {token}"},
        timeout=10.0,
    )
    if response.status_code != 201:
        return False, f"HTTP {response.status_code}: {response.text}"
    return True, f"created {response.json()['id']}"


def main() -> int:
    parser = argparse.ArgumentParser(description="Check appointment validation rules")
    parser.add_argument("--api-url", help="Also submit valid bookings to this API server")
    parser.add_argument("--token", help="Bearer token for --api-url")
    args = parser.parse_args()

    if args.api_url and not args.token:
        parser.error("--api-url requires --token")

    failures = 0
    for index, (name, overrides, expected_field) in enumerate(CASES, start=1):
        passed, detail = run_case(overrides, expected_field)
        print(f"Test {index}: {name} ... {'PASSED' if passed else 'FAILED'} ({detail})")
        failures += 0 if passed else 1

        if args.api_url and expected_field is None:
            try:
                created, detail = submit(args.api_url, args.token, overrides)
            except httpx.HTTPError as e:
                created, detail = False, str(e)
            print(f"        submitted ... {'PASSED' if created else 'FAILED'} ({detail})")
            failures += 0 if created else 1

    print(f"\n{len(CASES)} cases checked, {failures} failure(s)")
    logger.info("validation_smoke_test_finished", cases=len(CASES), failures=failures)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
