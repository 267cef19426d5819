"""
Collection Service base.

Shared plumbing for the organization-scoped data services: loading the
owned live collection, guarded single-record access, guarded deletes, the
realtime subscription, and the full refetch that follows every mutation.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Generic, Iterable, Mapping, Optional

from src.config import get_settings
from src.db import DatabaseClient
from src.errors import DashboardError, NotFoundError
from src.logging_config import get_logger
from src.realtime import ChangeFeed
from src.services.live_collection import LiveCollection, StatsT
from src.services.reconciler import CollectionSpec, RecordT
from src.services.tenancy import AccessPolicy, Caller

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CollectionService(Generic[RecordT, StatsT]):
    """Tenant-guarded access to one table, backed by an owned ``LiveCollection``."""

    entity: str = "record"

    def __init__(
        self,
        db: DatabaseClient,
        caller: Caller,
        spec: CollectionSpec[RecordT],
        compute_stats: Callable[[Iterable[RecordT]], StatsT],
        *,
        limit: int,
        strict: Optional[bool] = None,
    ) -> None:
        self.db = db
        self.caller = caller
        self.policy = AccessPolicy(caller)
        self.spec = spec
        self.limit = limit
        self.strict = get_settings().strict_mapping if strict is None else strict
        self.collection: LiveCollection[RecordT, StatsT] = LiveCollection(
            spec, self.policy, compute_stats, strict=self.strict
        )

    # -- Reads --

    async def load(self) -> tuple[RecordT, ...]:
        """Full fetch of the caller's scope into the owned collection."""
        filters = self.policy.read_filters()
        self.collection.loading = True
        try:
            rows = await self.db.select(
                self.spec.table,
                filters=filters,
                order_by=self.order_column,
                descending=self.spec.descending,
                limit=self.limit,
            )
        finally:
            self.collection.loading = False

        self.collection.replace(rows)
        logger.debug("collection_loaded", table=self.spec.table, count=len(self.collection))
        return self.collection.records

    async def list(self) -> tuple[RecordT, ...]:
        if not self.collection.loaded:
            await self.load()
        return self.collection.records

    async def stats(self) -> StatsT:
        if not self.collection.loaded:
            await self.load()
        return self.collection.stats

    async def get(self, record_id: str) -> RecordT:
        return await self._fetch_guarded(record_id, "view")

    # -- Writes --

    async def delete(self, record_id: str) -> None:
        await self._fetch_guarded(record_id, "delete")

        removed = await self.db.delete(self.spec.table, record_id, filters=self.policy.read_filters())
        if not removed:
            raise NotFoundError(self.entity, record_id)

        logger.info(f"{self.entity}_deleted", record_id=record_id)
        await self._refresh_after_mutation()

    # -- Realtime --

    @asynccontextmanager
    async def subscribe(self, feed: ChangeFeed) -> AsyncIterator[LiveCollection[RecordT, StatsT]]:
        """
        Keep the owned collection current while inside the block.

        The channel is released and the collection closed on every exit
        path, after which no further events or fetch results are applied.
        """
        try:
            async with feed.subscribe(
                self.spec.table,
                self._on_change,
                filter=self.policy.realtime_filter(),
            ):
                yield self.collection
        finally:
            self.collection.close()

    def _on_change(self, payload: dict[str, Any]) -> None:
        try:
            self.collection.apply_payload(payload)
        except DashboardError as e:
            logger.error("realtime_event_rejected", table=self.spec.table, error=str(e))

    # -- Helpers --

    @property
    def order_column(self) -> str:
        raise NotImplementedError

    async def _fetch_guarded(self, record_id: str, action: str) -> RecordT:
        row = await self.db.get(self.spec.table, record_id)
        if row is None:
            raise NotFoundError(self.entity, record_id)

        fields = self.spec.fields(row, strict=self.strict)
        self.policy.ensure_record_access(self.entity, record_id, fields.get("organization_id"), action)
        return self.spec.parse(row, strict=self.strict)

    async def _update_guarded(self, record_id: str, updates: Mapping[str, Any]) -> RecordT:
        row = await self.db.update(
            self.spec.table,
            record_id,
            {**updates, "updated_at": utc_now().isoformat()},
            filters=self.policy.read_filters(),
        )
        if row is None:
            raise NotFoundError(self.entity, record_id)
        return self.spec.parse(row, strict=self.strict)

    async def _refresh_after_mutation(self) -> None:
        # Only views that hold a snapshot need the refetch
        if self.collection.loaded and not self.collection.closed:
            await self.load()
