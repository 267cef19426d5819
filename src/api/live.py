"""
API Router — Live Collections over WebSocket.

``/live/{appointments|calls}?token=<access token>`` loads the caller's
collection, subscribes it to realtime changes, and pushes
``{collection, records, stats}`` after the initial load and after every
change. The subscription is released as soon as the client goes away.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from src.api.deps import get_database, get_feed
from src.auth import AuthService
from src.db import DatabaseClient
from src.errors import DashboardError
from src.logging_config import get_logger, organization_id_var, user_id_var
from src.realtime import ChangeFeed
from src.services.appointment_service import AppointmentService
from src.services.call_service import CallService
from src.services.collection_service import CollectionService
from src.services.live_collection import LiveCollection
from src.services.tenancy import Caller

logger = get_logger(__name__)
router = APIRouter(prefix="/live", tags=["Live"])

SERVICES: dict[str, Callable[[DatabaseClient, Caller], CollectionService[Any, Any]]] = {
    "appointments": AppointmentService,
    "calls": CallService,
}


@router.websocket("/{collection}")
async def live_collection(
    websocket: WebSocket,
    collection: str,
    token: str = Query(default=""),
    db: DatabaseClient = Depends(get_database),
    feed: ChangeFeed = Depends(get_feed),
) -> None:
    if collection not in SERVICES:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Unknown collection")
        return

    try:
        caller = await AuthService(db).caller_for_token(token)
    except DashboardError as e:
        logger.warning("live_auth_rejected", collection=collection, error=e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    user_id_var.set(caller.user_id)
    organization_id_var.set(caller.organization_id or "")
    await websocket.accept()
    logger.info("live_client_connected", collection=collection)

    service = SERVICES[collection](db, caller)
    changed = asyncio.Event()
    try:
        async with service.subscribe(feed) as live:
            live.add_listener(lambda _: changed.set())
            await service.load()
            changed.clear()
            await _push(websocket, collection, live)
            await _stream(websocket, collection, live, changed)
    except WebSocketDisconnect:
        pass
    except DashboardError as e:
        logger.error("live_stream_error", collection=collection, error=str(e))
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason=e.message)
    logger.info("live_client_disconnected", collection=collection)


async def _stream(
    websocket: WebSocket,
    collection: str,
    live: LiveCollection[Any, Any],
    changed: asyncio.Event,
) -> None:
    """Push after each change until the client disconnects."""
    receiver = asyncio.create_task(_drain(websocket))
    try:
        while True:
            waiter = asyncio.create_task(changed.wait())
            done, _ = await asyncio.wait({waiter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                waiter.cancel()
                return
            changed.clear()
            await _push(websocket, collection, live)
    finally:
        receiver.cancel()


async def _drain(websocket: WebSocket) -> None:
    # Incoming messages are ignored; this only notices the disconnect
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


async def _push(websocket: WebSocket, collection: str, live: LiveCollection[Any, Any]) -> None:
    await websocket.send_json(
        {
            "collection": collection,
            "records": [record.model_dump(mode="json") for record in live.records],
            "stats": live.stats.model_dump(mode="json"),
        }
    )
