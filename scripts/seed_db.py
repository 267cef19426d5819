"""
Database Seeding Script.

Creates a demo organization (if missing) with a week of sample appointments
and a handful of calls, for trying the dashboard locally.
"""

import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone

# Add project root to path so we can import src
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from src.db import get_db
from src.logging_config import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)

DEMO_ORGANIZATION = {
    "name": "Demo Dental Clinic",
    "domain": "demo-dental.example.com",
    "subscription_tier": "starter",
    "business_type": "dental",
    "is_active": True,
}

SAMPLE_APPOINTMENTS = [
    # (customer, phone, email, days ahead, hour, duration, service, status)
    ("John Doe", "5550101234", "john@example.com", 1, 9, 30, "Cleaning", "scheduled"),
    ("Jane Smith", "5550102345", "jane@example.com", 1, 11, 45, "Consultation", "confirmed"),
    ("Bob Johnson", "5550103456", None, 2, 14, 60, "Filling", "scheduled"),
    ("Alice Brown", "5550104567", "alice@example.com", -1, 10, 30, "Check-up", "completed"),
    ("Carlos Diaz", "5550105678", "carlos@example.com", -2, 15, 30, "Cleaning", "no_show"),
]

SAMPLE_CALLS = [
    # (caller, phone, direction, status, duration, outcome, minutes ago)
    ("John Doe", "5550101234", "inbound", "completed", 185, "appointment_booked", 90),
    ("Unknown", "5550199999", "inbound", "no_answer", None, None, 60),
    ("Jane Smith", "5550102345", "outbound", "completed", 95, "reminder_confirmed", 30),
    ("Bob Johnson", "5550103456", "inbound", "busy", None, None, 10),
]


async def seed() -> None:
    db = get_db()
    now = datetime.now(timezone.utc)

    logger.info("Seeding database...")

    existing = await db.select("organizations", filters={"name": DEMO_ORGANIZATION["name"]}, limit=1)
    if existing:
        organization_id = existing[0]["id"]
        logger.info(f"Using existing organization {DEMO_ORGANIZATION['name']}", id=organization_id)
    else:
        organization = await db.insert("organizations", DEMO_ORGANIZATION)
        organization_id = organization["id"]
        logger.info(f"Created organization {DEMO_ORGANIZATION['name']}", id=organization_id)

    for name, phone, email, days, hour, duration, service, status in SAMPLE_APPOINTMENTS:
        scheduled_at = (now + timedelta(days=days)).replace(hour=hour, minute=0, second=0, microsecond=0)
        row = await db.insert("appointments", {
            "organization_id": organization_id,
            "customer_name": name,
            "customer_phone": phone,
            "customer_email": email,
            "scheduled_at": scheduled_at.isoformat(),
            "duration_minutes": duration,
            "service_type": service,
            "status": status,
            "reminders_sent_at": [],
        })
        logger.info(f"Created appointment for {name}", id=row["id"])

    for name, phone, direction, status, duration, outcome, minutes_ago in SAMPLE_CALLS:
        started_at = now - timedelta(minutes=minutes_ago)
        ended_at = started_at + timedelta(seconds=duration or 20)
        row = await db.insert("calls", {
            "organization_id": organization_id,
            "caller_name": name,
            "caller_phone": phone,
            "direction": direction,
            "status": status,
            "started_at": started_at.isoformat(),
            "ended_at": ended_at.isoformat(),
            "duration_seconds": duration,
            "outcome": outcome,
        })
        logger.info(f"Created call from {name}", id=row["id"])

    logger.info("Seeding complete.", organization_id=organization_id)


if __name__ == "__main__":
    asyncio.run(seed())
