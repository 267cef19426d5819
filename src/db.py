"""
Supabase Database Client.

Wraps the Supabase client behind a small set of table operations (select,
fetch-one, insert, update, delete) that every data service goes through.
The client is passed explicitly to the services that use it; ``get_db()``
only provides the process-wide default so FastAPI dependencies and workers
can share one connection pool, and tests can hand in a double instead.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

from supabase import Client, create_client

from src.config import Settings, get_settings
from src.errors import BackendError
from src.logging_config import get_logger

logger = get_logger(__name__)

Filters = dict[str, Any]


class DatabaseClient:
    """Wrapper around the official Supabase Python client."""

    def __init__(self, client: Optional[Client] = None, settings: Optional[Settings] = None) -> None:
        if client is None:
            settings = settings or get_settings()

            if not settings.supabase_url or not settings.supabase_service_key:
                logger.warning(
                    "Supabase credentials missing. Database operations will fail.",
                    url=bool(settings.supabase_url),
                    key=bool(settings.supabase_service_key),
                )

            try:
                client = create_client(settings.supabase_url, settings.supabase_service_key)
                logger.info("Supabase client initialized", url=settings.supabase_url)
            except Exception as e:
                logger.error("Failed to initialize Supabase client", error=str(e))
                raise BackendError("Could not initialize Supabase client", cause=e) from e

        self._client = client

    @property
    def client(self) -> Client:
        """Access the raw Supabase client."""
        return self._client

    @property
    def auth(self) -> Any:
        """Supabase GoTrue auth client."""
        return self._client.auth

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows matching every filter (exact match, or membership for lists)."""
        try:
            query = self.client.table(table).select(columns)
            query = _apply_filters(query, filters)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit is not None:
                query = query.limit(limit)
            response = query.execute()
            return response.data or []
        except Exception as e:
            logger.error("db_select_error", table=table, filters=filters, error=str(e))
            raise BackendError(f"Failed to load {table}", cause=e) from e

    async def get(self, table: str, record_id: str, *, columns: str = "*") -> dict[str, Any] | None:
        """Fetch a single row by primary key, or None when it does not exist."""
        try:
            response = (
                self.client.table(table)
                .select(columns)
                .eq("id", record_id)
                .limit(1)
                .execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error("db_get_error", table=table, id=record_id, error=str(e))
            raise BackendError(f"Failed to load {table} record", cause=e) from e

    async def insert(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored."""
        try:
            response = self.client.table(table).insert(payload).execute()
        except Exception as e:
            logger.error("db_insert_error", table=table, error=str(e))
            raise BackendError(f"Failed to create {table} record", cause=e) from e

        if not response.data:
            raise BackendError(f"Insert into {table} returned no row")
        return response.data[0]

    async def update(
        self,
        table: str,
        record_id: str,
        updates: dict[str, Any],
        *,
        filters: Filters | None = None,
    ) -> dict[str, Any] | None:
        """Update a row by id (and any extra filters); None when nothing matched."""
        try:
            query = self.client.table(table).update(updates).eq("id", record_id)
            query = _apply_filters(query, filters)
            response = query.execute()
            # Supabase update returns a list, usually with 1 item
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error("db_update_error", table=table, id=record_id, error=str(e))
            raise BackendError(f"Failed to update {table} record", cause=e) from e

    async def delete(
        self,
        table: str,
        record_id: str,
        *,
        filters: Filters | None = None,
    ) -> bool:
        """Delete a row by id (and any extra filters); True when a row was removed."""
        try:
            query = self.client.table(table).delete().eq("id", record_id)
            query = _apply_filters(query, filters)
            response = query.execute()
            return bool(response.data)
        except Exception as e:
            logger.error("db_delete_error", table=table, id=record_id, error=str(e))
            raise BackendError(f"Failed to delete {table} record", cause=e) from e


def _apply_filters(query: Any, filters: Filters | None) -> Any:
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set)):
            query = query.in_(column, list(value))
        else:
            query = query.eq(column, value)
    return query


# Global accessor
@lru_cache(maxsize=1)
def get_db() -> DatabaseClient:
    return DatabaseClient()
