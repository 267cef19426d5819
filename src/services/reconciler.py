"""
Change Reconciler.

Merges realtime change events into an in-memory snapshot. ``apply_change``
is a pure reducer over an immutable tuple: it never reads anything but its
arguments, so back-to-back events for the same record compose correctly no
matter when the consumer gets around to rendering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, TypeVar

import pydantic
from pydantic import BaseModel

from src.schemas.appointment import Appointment
from src.schemas.call import Call
from src.schemas.events import ChangeEvent, ChangeType
from src.schemas.validation import malformed_row
from src.services.adapters import (
    appointment_fields,
    appointment_from_row,
    call_fields,
    call_from_row,
)

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True)
class CollectionSpec(Generic[RecordT]):
    """How one kind of record is parsed, merged and ordered."""

    table: str
    from_row: Callable[..., RecordT]
    fields: Callable[..., dict[str, Any]]
    sort_key: Callable[[RecordT], Any]
    descending: bool = False

    def parse(self, row: Mapping[str, Any], *, strict: bool | None = None) -> RecordT:
        """Build the canonical record; a row that does not fit raises ``BackendError``."""
        try:
            return self.from_row(row, strict=strict)
        except pydantic.ValidationError as e:
            raise malformed_row(self.table, dict(row), e) from e

    def merge(self, existing: RecordT, changes: Mapping[str, Any]) -> RecordT:
        try:
            return merge_record(existing, changes)
        except pydantic.ValidationError as e:
            raise malformed_row(self.table, {"id": getattr(existing, "id", None), **changes}, e) from e

    def sort(self, records: tuple[RecordT, ...] | list[RecordT]) -> tuple[RecordT, ...]:
        return tuple(sorted(records, key=self.sort_key, reverse=self.descending))


APPOINTMENTS: CollectionSpec[Appointment] = CollectionSpec(
    table="appointments",
    from_row=appointment_from_row,
    fields=appointment_fields,
    sort_key=lambda a: (a.scheduled_at, a.id),
)

CALLS: CollectionSpec[Call] = CollectionSpec(
    table="calls",
    from_row=call_from_row,
    fields=call_fields,
    sort_key=lambda c: (c.created_at, c.id),
    descending=True,
)


def merge_record(existing: RecordT, changes: Mapping[str, Any]) -> RecordT:
    """Shallow merge: fields missing from ``changes`` keep their current values."""
    return type(existing).model_validate({**existing.model_dump(), **changes})


def apply_change(
    records: tuple[RecordT, ...],
    event: ChangeEvent,
    spec: CollectionSpec[RecordT],
    *,
    strict: bool | None = None,
) -> tuple[RecordT, ...]:
    """
    Return the snapshot after ``event``.

    - INSERT adds the record (replacing one with the same id) and re-sorts.
    - UPDATE merges the incoming fields onto the record with that id; an id
      not in the snapshot leaves it unchanged.
    - DELETE drops the record with that id; an unknown id returns
      ``records`` itself.
    """
    if event.type == ChangeType.INSERT:
        record = spec.parse(event.record, strict=strict)
        rest = [r for r in records if r.id != record.id]
        return spec.sort([*rest, record])

    record_id = event.record_id
    if record_id is None:
        return records
    record_id = str(record_id)

    if event.type == ChangeType.UPDATE:
        changes = spec.fields(event.record, strict=strict)
        changes.pop("id", None)
        updated = []
        found = False
        for r in records:
            if r.id == record_id:
                updated.append(spec.merge(r, changes))
                found = True
            else:
                updated.append(r)
        if not found:
            return records
        return spec.sort(updated)

    if event.type == ChangeType.DELETE:
        remaining = tuple(r for r in records if r.id != record_id)
        if len(remaining) == len(records):
            return records
        return remaining

    return records
