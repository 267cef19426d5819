"""
Realtime change events.

Supabase delivers ``postgres_changes`` payloads in two shapes depending on
the client: the Python realtime client nests them under ``data`` with
``type`` / ``record`` / ``old_record``, while the JS client (and anything
relaying its messages) uses ``eventType`` / ``new`` / ``old``. Both are
parsed into one ``ChangeEvent`` here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from src.errors import UnknownChangeEventError


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    type: ChangeType
    record: dict[str, Any] = field(default_factory=dict)
    old_record: dict[str, Any] = field(default_factory=dict)
    table: str = ""

    @property
    def record_id(self) -> Any:
        """Id of the affected row; deletes only carry it in ``old_record``."""
        if self.type == ChangeType.DELETE:
            return self.old_record.get("id", self.record.get("id"))
        return self.record.get("id", self.old_record.get("id"))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ChangeEvent:
        """Parse a realtime payload; raises ``UnknownChangeEventError`` on an unknown tag."""
        data = payload.get("data", payload)
        if "eventType" in data:
            tag, new, old = data.get("eventType"), data.get("new"), data.get("old")
        else:
            tag, new, old = data.get("type"), data.get("record"), data.get("old_record")

        try:
            change_type = ChangeType(str(tag).upper())
        except ValueError:
            raise UnknownChangeEventError(tag) from None

        return cls(
            type=change_type,
            record=dict(new or {}),
            old_record=dict(old or {}),
            table=data.get("table", ""),
        )
