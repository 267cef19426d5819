"""Pytest configuration, in-memory backend doubles and fixtures."""

from __future__ import annotations

import os
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, AsyncIterator, Callable, Optional
from unittest.mock import MagicMock

import pytest

# Set test environment before settings are first read
os.environ["ENVIRONMENT"] = "development"
os.environ.pop("STRICT_STATUS_MAPPING", None)

from src.config import get_settings  # noqa: E402
from src.schemas.user import UserRole  # noqa: E402
from src.services.tenancy import Caller  # noqa: E402

get_settings.cache_clear()

ORG_A = "org-a"
ORG_B = "org-b"
BASE_TIME = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


# ============================================================================
# Backend doubles
# ============================================================================


def _matches(row: dict[str, Any], filters: Optional[dict[str, Any]]) -> bool:
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set)):
            if row.get(column) not in value:
                return False
        elif row.get(column) != value:
            return False
    return True


class FakeAuth:
    """Stands in for the GoTrue client: tokens map to auth users."""

    def __init__(self) -> None:
        self.users: dict[str, SimpleNamespace] = {}
        self.admin = MagicMock()

    def add_user(self, token: str, user_id: str, email: str = "") -> None:
        self.users[token] = SimpleNamespace(id=user_id, email=email)

    def get_user(self, token: str) -> SimpleNamespace:
        if token not in self.users:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=self.users[token])


class FakeDatabase:
    """In-memory implementation of the ``DatabaseClient`` table operations."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.operations: list[tuple[str, str]] = []
        self.auth = FakeAuth()
        self.fail_with: Optional[Exception] = None

    def seed(self, table: str, *rows: dict[str, Any]) -> None:
        for row in rows:
            self.tables[table][str(row["id"])] = dict(row)

    def row(self, table: str, record_id: str) -> Optional[dict[str, Any]]:
        return self.tables[table].get(record_id)

    def _record(self, op: str, table: str) -> None:
        self.operations.append((op, table))
        if self.fail_with is not None:
            raise self.fail_with

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        self._record("select", table)
        rows = [dict(r) for r in self.tables[table].values() if _matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: str(r.get(order_by) or ""), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def get(self, table: str, record_id: str, *, columns: str = "*") -> Optional[dict[str, Any]]:
        self._record("get", table)
        row = self.tables[table].get(str(record_id))
        return dict(row) if row is not None else None

    async def insert(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._record("insert", table)
        row = {
            "id": payload.get("id") or uuid.uuid4().hex,
            "created_at": datetime.now(timezone.utc).isoformat(),
            **payload,
        }
        self.tables[table][str(row["id"])] = row
        return dict(row)

    async def update(
        self,
        table: str,
        record_id: str,
        updates: dict[str, Any],
        *,
        filters: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        self._record("update", table)
        row = self.tables[table].get(str(record_id))
        if row is None or not _matches(row, filters):
            return None
        row.update(updates)
        return dict(row)

    async def delete(
        self,
        table: str,
        record_id: str,
        *,
        filters: Optional[dict[str, Any]] = None,
    ) -> bool:
        self._record("delete", table)
        row = self.tables[table].get(str(record_id))
        if row is None or not _matches(row, filters):
            return False
        del self.tables[table][str(record_id)]
        return True


class FakeFeed:
    """Realtime feed double; ``emit`` delivers a payload to every live subscriber of a table."""

    def __init__(self) -> None:
        self.active: dict[str, list[tuple[Callable[[dict[str, Any]], None], Optional[str]]]] = defaultdict(list)
        self.subscriptions: list[tuple[str, Optional[str]]] = []
        self.released: list[str] = []
        self.closed = False

    @asynccontextmanager
    async def subscribe(
        self,
        table: str,
        callback: Callable[[dict[str, Any]], None],
        *,
        filter: Optional[str] = None,
        schema: str = "public",
    ) -> AsyncIterator[None]:
        entry = (callback, filter)
        self.active[table].append(entry)
        self.subscriptions.append((table, filter))
        try:
            yield
        finally:
            self.active[table].remove(entry)
            self.released.append(table)

    def emit(self, table: str, event_type: str, record: Optional[dict] = None, old: Optional[dict] = None) -> None:
        payload = {"data": {"type": event_type, "table": table, "record": record, "old_record": old}}
        for callback, _ in list(self.active[table]):
            callback(payload)

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def feed() -> FakeFeed:
    return FakeFeed()


@pytest.fixture
def super_admin() -> Caller:
    return Caller(user_id="user-root", role=UserRole.SUPER_ADMIN, email="root@example.com")


@pytest.fixture
def admin_a() -> Caller:
    return Caller(user_id="user-admin-a", role=UserRole.ORG_ADMIN, organization_id=ORG_A)


@pytest.fixture
def agent_a() -> Caller:
    return Caller(user_id="user-agent-a", role=UserRole.AGENT, organization_id=ORG_A)


@pytest.fixture
def agent_b() -> Caller:
    return Caller(user_id="user-agent-b", role=UserRole.AGENT, organization_id=ORG_B)


@pytest.fixture
def orphan() -> Caller:
    """A user that has not been assigned to any organization yet."""
    return Caller(user_id="user-orphan", role=UserRole.USER)


@pytest.fixture
def make_appointment_row() -> Callable[..., dict[str, Any]]:
    counter = iter(range(1, 10_000))

    def factory(**overrides: Any) -> dict[str, Any]:
        n = next(counter)
        row = {
            "id": f"appt-{n}",
            "organization_id": ORG_A,
            "scheduled_at": (BASE_TIME + timedelta(hours=n)).isoformat(),
            "duration_minutes": 30,
            "customer_name": f"Customer {n}",
            "customer_phone": "5550100000",
            "customer_email": None,
            "status": "scheduled",
            "reminders_sent_at": [],
            "created_at": BASE_TIME.isoformat(),
        }
        row.update(overrides)
        return row

    return factory


@pytest.fixture
def make_call_row() -> Callable[..., dict[str, Any]]:
    counter = iter(range(1, 10_000))

    def factory(**overrides: Any) -> dict[str, Any]:
        n = next(counter)
        row = {
            "id": f"call-{n}",
            "organization_id": ORG_A,
            "direction": "inbound",
            "status": "completed",
            "caller_name": f"Caller {n}",
            "caller_phone": "5550100000",
            "duration_seconds": 60,
            "outcome": None,
            "created_at": (BASE_TIME + timedelta(minutes=n)).isoformat(),
        }
        row.update(overrides)
        return row

    return factory


@pytest.fixture
def valid_booking() -> dict[str, Any]:
    return {
        "customer_name": "John Doe",
        "customer_phone": "1234567890",
        "customer_email": "john@example.com",
        "scheduled_date": "2024-01-15",
        "scheduled_time": "14:30",
        "duration_minutes": 30,
        "notes": "Follow-up appointment",
    }
