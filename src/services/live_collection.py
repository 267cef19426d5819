"""
Live Collection.

The in-memory snapshot a dashboard view works from. A collection is filled
by a full fetch (``replace``), kept current by realtime change events
(``apply`` / ``apply_payload``), and recomputes its statistics after each
of them. Once closed it ignores everything, so late fetch results and
straggling events cannot update a view that has gone away.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Iterable, Mapping, Optional, TypeVar

from pydantic import BaseModel

from src.config import get_settings
from src.errors import UnknownChangeEventError
from src.logging_config import get_logger
from src.schemas.events import ChangeEvent, ChangeType
from src.services.reconciler import CollectionSpec, RecordT, apply_change
from src.services.tenancy import AccessPolicy

logger = get_logger(__name__)

StatsT = TypeVar("StatsT", bound=BaseModel)
Listener = Callable[["LiveCollection[Any, Any]"], None]


class LiveCollection(Generic[RecordT, StatsT]):
    """Ordered, tenant-scoped snapshot of one table plus its derived statistics."""

    def __init__(
        self,
        spec: CollectionSpec[RecordT],
        policy: AccessPolicy,
        compute_stats: Callable[[Iterable[RecordT]], StatsT],
        *,
        strict: Optional[bool] = None,
    ) -> None:
        self.spec = spec
        self.policy = policy
        self._compute_stats = compute_stats
        self._strict = get_settings().strict_mapping if strict is None else strict
        self._records: tuple[RecordT, ...] = ()
        self._stats: StatsT = compute_stats(())
        self._listeners: list[Listener] = []
        self.loading = False
        self.loaded = False
        self.closed = False

    @property
    def records(self) -> tuple[RecordT, ...]:
        return self._records

    @property
    def stats(self) -> StatsT:
        return self._stats

    def __len__(self) -> int:
        return len(self._records)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every change; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # -- Mutations --

    def replace(self, rows: Iterable[Mapping[str, Any]]) -> None:
        """Swap in the result of a full fetch."""
        if self.closed:
            logger.debug("stale_fetch_ignored", table=self.spec.table)
            return
        records = [self.spec.parse(row, strict=self._strict) for row in rows]
        visible = [r for r in records if self.policy.can_see(getattr(r, "organization_id", None))]
        self._set(self.spec.sort(visible))
        self.loaded = True
        self.loading = False

    def apply(self, event: ChangeEvent) -> bool:
        """Merge one change event. Returns True when the snapshot changed."""
        if self.closed:
            logger.debug("stale_event_ignored", table=self.spec.table, type=event.type.value)
            return False

        if event.type != ChangeType.DELETE and not self._in_scope(event):
            if not self._holds(event.record_id):
                logger.warning(
                    "realtime_event_out_of_scope",
                    table=self.spec.table,
                    record_id=event.record_id,
                )
                return False
            # Moved to another organization: the caller must stop seeing it
            logger.info("realtime_record_left_scope", table=self.spec.table, record_id=event.record_id)
            event = ChangeEvent(
                type=ChangeType.DELETE,
                old_record={"id": event.record_id},
                table=event.table,
            )

        records = apply_change(self._records, event, self.spec, strict=self._strict)
        changed = records is not self._records
        self._set(records, notify=changed)
        return changed

    def apply_payload(self, payload: Mapping[str, Any]) -> bool:
        """Parse and merge a raw realtime payload; the feed callback entry point."""
        if self.closed:
            return False
        try:
            event = ChangeEvent.from_payload(payload)
        except UnknownChangeEventError as e:
            if self._strict:
                logger.error("realtime_event_unknown", table=self.spec.table, tag=e.details.get("tag"))
                raise
            logger.warning("realtime_event_ignored", table=self.spec.table, tag=e.details.get("tag"))
            return False
        return self.apply(event)

    def close(self) -> None:
        self.closed = True
        self.loading = False
        self._listeners.clear()

    # -- Internals --

    def _in_scope(self, event: ChangeEvent) -> bool:
        fields = self.spec.fields(event.record, strict=self._strict)
        if "organization_id" not in fields:
            # Partial update without tenant columns: it can only touch a record we already hold
            return True
        return self.policy.can_see(fields["organization_id"])

    def _holds(self, record_id: Any) -> bool:
        if record_id is None:
            return False
        return any(r.id == str(record_id) for r in self._records)

    def _set(self, records: tuple[RecordT, ...], *, notify: bool = True) -> None:
        self._records = records
        self._stats = self._compute_stats(records)
        if notify:
            for listener in list(self._listeners):
                listener(self)
