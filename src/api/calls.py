"""
API Router — Call Endpoints.

Logging calls and moving them through their lifecycle. Status bodies accept
either the backend vocabulary (``answered``) or the display one
(``in_progress``).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Response

from src.api.deps import get_call_service
from src.schemas.call import Call, CallEnd, CallStats, CallStatusUpdate, CallTransfer
from src.services.call_service import CallService

router = APIRouter(prefix="/calls", tags=["Calls"])


@router.get("/", response_model=list[Call])
async def list_calls(service: CallService = Depends(get_call_service)) -> list[Call]:
    """Most recent calls first."""
    return list(await service.list())


@router.get("/stats", response_model=CallStats)
async def call_stats(service: CallService = Depends(get_call_service)) -> CallStats:
    return await service.stats()


@router.post("/", response_model=Call, status_code=201)
async def create_call(
    body: dict[str, Any] = Body(...),
    service: CallService = Depends(get_call_service),
) -> Call:
    return await service.create(body)


@router.get("/{call_id}", response_model=Call)
async def get_call(call_id: str, service: CallService = Depends(get_call_service)) -> Call:
    return await service.get(call_id)


@router.post("/{call_id}/status", response_model=Call)
async def update_call_status(
    call_id: str,
    body: CallStatusUpdate,
    service: CallService = Depends(get_call_service),
) -> Call:
    return await service.update_status(call_id, body.status, body.outcome)


@router.post("/{call_id}/end", response_model=Call)
async def end_call(
    call_id: str,
    body: Optional[CallEnd] = None,
    service: CallService = Depends(get_call_service),
) -> Call:
    body = body or CallEnd()
    return await service.end_call(call_id, body.status, body.outcome)


@router.post("/{call_id}/transfer", response_model=Call)
async def transfer_call(
    call_id: str,
    body: CallTransfer,
    service: CallService = Depends(get_call_service),
) -> Call:
    return await service.transfer(call_id, body.agent, body.reason)


@router.delete("/{call_id}", status_code=204)
async def delete_call(call_id: str, service: CallService = Depends(get_call_service)) -> Response:
    await service.delete(call_id)
    return Response(status_code=204)
