"""
Call Service.

Logging calls, moving them through their telephony lifecycle, ending and
transferring them, plus the live call collection (newest first) and its
statistics.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from src.config import get_settings
from src.db import DatabaseClient
from src.errors import InvalidTransitionError, UnknownStatusError, ValidationError
from src.logging_config import get_logger
from src.schemas.call import (
    TERMINAL_CALL_STATUSES,
    Call,
    CallCreate,
    CallStats,
    CallStatus,
    can_transition,
)
from src.schemas.validation import validate_payload
from src.services.collection_service import CollectionService, utc_now
from src.services.reconciler import CALLS
from src.services.statistics import compute_call_stats
from src.services.status_mapping import to_backend_call_status
from src.services.tenancy import Caller

logger = get_logger(__name__)


class CallService(CollectionService[Call, CallStats]):
    entity = "call"

    def __init__(self, db: DatabaseClient, caller: Caller, *, strict: Optional[bool] = None) -> None:
        super().__init__(
            db,
            caller,
            CALLS,
            compute_call_stats,
            limit=get_settings().call_fetch_limit,
            strict=strict,
        )

    @property
    def order_column(self) -> str:
        return "created_at"

    async def create(self, data: Union[CallCreate, dict[str, Any]]) -> Call:
        """Log a call that is just starting (status ``initiated``)."""
        call_in = data if isinstance(data, CallCreate) else validate_payload(CallCreate, data)
        organization_id = self.policy.organization_for_create(call_in.organization_id)

        payload = {
            **call_in.model_dump(mode="json", exclude={"organization_id"}),
            "organization_id": organization_id,
            "status": CallStatus.INITIATED.value,
            "started_at": utc_now().isoformat(),
        }
        row = await self.db.insert(self.spec.table, payload)
        call = self.spec.parse(row, strict=self.strict)

        logger.info(
            "call_created",
            call_id=call.id,
            organization_id=organization_id,
            direction=call.direction.value,
        )
        await self._refresh_after_mutation()
        return call

    async def update_status(
        self,
        call_id: str,
        status: Union[CallStatus, str],
        outcome: Optional[str] = None,
    ) -> Call:
        """Move a call to ``status`` (backend or display vocabulary)."""
        requested = _requested_status(status)

        current = await self._fetch_guarded(call_id, "update")
        if not can_transition(current.status, requested):
            raise InvalidTransitionError(self.entity, current.status.value, requested.value)

        updates: dict[str, Any] = {"status": requested.value}
        if outcome:
            updates["outcome"] = outcome
        if requested in TERMINAL_CALL_STATUSES and current.ended_at is None:
            ended_at = utc_now()
            updates["ended_at"] = ended_at.isoformat()
            if current.started_at and current.duration_seconds is None:
                updates["duration_seconds"] = max(0, int((ended_at - current.started_at).total_seconds()))

        call = await self._update_guarded(call_id, updates)

        logger.info(
            "call_status_changed",
            call_id=call_id,
            from_status=current.status.value,
            to_status=requested.value,
            outcome=outcome,
        )
        await self._refresh_after_mutation()
        return call

    async def end_call(
        self,
        call_id: str,
        status: Union[CallStatus, str] = CallStatus.COMPLETED,
        outcome: Optional[str] = None,
    ) -> Call:
        """Finalize a call; ``status`` must be one of the terminal statuses."""
        requested = _requested_status(status)
        if requested not in TERMINAL_CALL_STATUSES:
            raise ValidationError(
                field_errors={"status": f"'{requested.value}' does not end a call"}
            )
        return await self.update_status(call_id, requested, outcome)

    async def transfer(self, call_id: str, agent: str, reason: str = "") -> Call:
        """Hand the call to another agent; the call's status is left as is."""
        if not agent.strip():
            raise ValidationError(field_errors={"agent": "Agent is required"})

        await self._fetch_guarded(call_id, "update")
        outcome = f"transferred: {reason}" if reason else "transferred"
        call = await self._update_guarded(call_id, {"assigned_agent": agent.strip(), "outcome": outcome})

        logger.info("call_transferred", call_id=call_id, agent=agent)
        await self._refresh_after_mutation()
        return call


def _requested_status(status: Union[CallStatus, str]) -> CallStatus:
    # Caller input is never silently mapped to a fallback
    try:
        return to_backend_call_status(status, strict=True)
    except UnknownStatusError:
        raise ValidationError(field_errors={"status": f"Unknown call status '{status}'"}) from None
