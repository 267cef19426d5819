"""
Live Monitor Worker.

Mirrors the appointment and call collections from the realtime feed and
logs fresh statistics whenever either changes. Useful for watching a tenant
(or every tenant) from a terminal, and as a smoke test of the realtime
configuration. Runs as a long-lived background process.

Start with:
    python -m src.workers.live_monitor [--organization-id ID]
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import os
from typing import Any, Optional

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from src.db import DatabaseClient, get_db
from src.logging_config import generate_trace_id, get_logger, organization_id_var, setup_logging, trace_id_var
from src.realtime import ChangeFeed
from src.schemas.user import ELEVATED_ROLE, UserRole
from src.services.appointment_service import AppointmentService
from src.services.call_service import CallService
from src.services.live_collection import LiveCollection
from src.services.tenancy import Caller

setup_logging()
logger = get_logger(__name__)

MONITOR_USER_ID = "live-monitor"


def monitor_caller(organization_id: Optional[str] = None) -> Caller:
    """All tenants with the elevated role, or one tenant as an agent of it."""
    if organization_id:
        return Caller(user_id=MONITOR_USER_ID, role=UserRole.AGENT, organization_id=organization_id)
    return Caller(user_id=MONITOR_USER_ID, role=ELEVATED_ROLE)


class LiveMonitorWorker:
    """Keeps both live collections subscribed until stopped."""

    def __init__(
        self,
        organization_id: Optional[str] = None,
        db: Optional[DatabaseClient] = None,
        feed: Optional[ChangeFeed] = None,
    ) -> None:
        self.caller = monitor_caller(organization_id)
        self._db = db or get_db()
        self._feed = feed or ChangeFeed()
        self._stopped = asyncio.Event()
        self.appointments = AppointmentService(self._db, self.caller)
        self.calls = CallService(self._db, self.caller)

    async def start(self) -> None:
        trace_id_var.set(generate_trace_id())
        organization_id_var.set(self.caller.organization_id or "")
        logger.info("live_monitor_started", organization_id=self.caller.organization_id or "*")

        async with self.appointments.subscribe(self._feed) as appointments, \
                self.calls.subscribe(self._feed) as calls:
            appointments.add_listener(self._on_change)
            calls.add_listener(self._on_change)
            await self.appointments.load()
            await self.calls.load()
            self._log_stats(appointments)
            self._log_stats(calls)

            await self._stopped.wait()

        await self._feed.close()
        logger.info("live_monitor_finished")

    async def stop(self) -> None:
        """Leave the subscriptions; ``start`` returns once they are released."""
        self._stopped.set()
        logger.info("live_monitor_stopped")

    def _on_change(self, collection: LiveCollection[Any, Any]) -> None:
        if collection.loaded:
            self._log_stats(collection)

    def _log_stats(self, collection: LiveCollection[Any, Any]) -> None:
        logger.info(
            "live_stats",
            table=collection.spec.table,
            records=len(collection),
            **collection.stats.model_dump(),
        )


async def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Log live appointment and call statistics")
    parser.add_argument("--organization-id", help="Watch a single organization (default: all)")
    args = parser.parse_args(argv)

    worker = LiveMonitorWorker(organization_id=args.organization_id)

    # Handle graceful shutdown
    loop = asyncio.get_running_loop()

    def shutdown_handler() -> None:
        logger.info("shutdown_signal_received")
        asyncio.ensure_future(worker.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        await worker.start()
    except KeyboardInterrupt:
        await worker.stop()


if __name__ == "__main__":
    asyncio.run(main())
