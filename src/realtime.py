"""
Supabase Realtime Change Feed.

Holds one async Supabase client for ``postgres_changes`` subscriptions.
Subscriptions are handed out as async context managers: the channel is
removed on every exit path, so a consumer that goes away can never keep
receiving events.

Usage:
    feed = ChangeFeed()
    async with feed.subscribe("appointments", on_change, filter="organization_id=eq.42"):
        ...
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

from supabase import AsyncClient, acreate_client

from src.config import Settings, get_settings
from src.errors import BackendError
from src.logging_config import get_logger

logger = get_logger(__name__)

ChangeCallback = Callable[[dict[str, Any]], None]


class ChangeFeed:
    """Lazily connected realtime client shared by every live collection in the process."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncClient] = None) -> None:
        self._settings = settings or get_settings()
        self._client = client

    async def connect(self) -> AsyncClient:
        if self._client is None:
            try:
                self._client = await acreate_client(
                    self._settings.supabase_url,
                    self._settings.supabase_service_key,
                )
            except Exception as e:
                logger.error("realtime_connect_error", error=str(e))
                raise BackendError("Could not connect to realtime", cause=e) from e
            logger.info("realtime_connected", url=self._settings.supabase_url)
        return self._client

    async def close(self) -> None:
        """Drop every channel; later subscriptions reconnect."""
        if self._client is not None:
            await self._client.remove_all_channels()
            self._client = None
            logger.info("realtime_closed")

    @asynccontextmanager
    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        *,
        filter: Optional[str] = None,
        schema: str = "public",
    ) -> AsyncIterator[None]:
        """Deliver every insert/update/delete on ``table`` to ``callback`` while inside the block."""
        client = await self.connect()
        channel = client.channel(f"{table}_changes_{uuid.uuid4().hex[:8]}")
        channel.on_postgres_changes(
            event="*",
            schema=schema,
            table=table,
            filter=filter,
            callback=callback,
        )

        try:
            await channel.subscribe()
        except Exception as e:
            logger.error("realtime_subscribe_error", table=table, error=str(e))
            raise BackendError(f"Could not subscribe to {table} changes", cause=e) from e

        logger.info("realtime_subscribed", table=table, filter=filter)
        try:
            yield
        finally:
            try:
                await client.remove_channel(channel)
            except Exception as e:
                # Never mask the exception that ended the block
                logger.error("realtime_unsubscribe_error", table=table, error=str(e))
            else:
                logger.info("realtime_unsubscribed", table=table)
