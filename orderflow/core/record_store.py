"""Typed row access over the remote tabular store.

Every logical table is described by a ``Table`` pairing the remote table name
with the pydantic model its rows are validated against. Rows leave this module
as models only, so nothing downstream touches untyped fields.

Remote metadata (which tables exist and their column sets) is loaded into a
``StoreHandle`` and reused until it is older than the configured TTL. That
handle is the only cached state in the engine. It is shared by all request
tasks without a lock; a refresh racing another refresh only costs a duplicate
probe, and readers can at worst see a handle up to one TTL stale.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python
from supabase import Client

from orderflow.api.middleware.error_handler import StoreError
from orderflow.core.config import get_settings
from orderflow.core.supabase import get_supabase_client
from orderflow.models.catalog import CatalogItem
from orderflow.models.notification import NotificationRecord
from orderflow.models.order import ArchivedOrderRecord, OrderItemRecord, OrderRecord
from orderflow.models.user import UserRecord

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

# PostgREST caps a single response, so scans are paged
PAGE_SIZE = 1000


@dataclass(frozen=True)
class Table(Generic[RecordT]):
    """A logical table and the model its rows map to."""

    name: str
    model: type[RecordT]
    soft_delete_column: str | None = None
    recency_column: str | None = None

    def parse(self, row: dict[str, Any]) -> RecordT:
        """Validate a raw row into the table's model.

        Raises:
            StoreError: If the row does not fit the model (schema mismatch).
        """
        try:
            return self.model.model_validate(row)
        except PydanticValidationError as e:
            raise StoreError(
                f"Row in '{self.name}' does not match schema: {e.error_count()} error(s)",
                details=[
                    {"loc": [self.name, *(str(p) for p in err["loc"])], "msg": err["msg"], "type": "schema_mismatch"}
                    for err in e.errors()
                ],
            ) from e

    def dump(self, record: RecordT) -> dict[str, Any]:
        """Serialize a model into a row payload."""
        return record.model_dump(mode="json")

    def newest_last(self, records: list[RecordT]) -> list[RecordT]:
        """Order records by id, rows sharing an id oldest first.

        The sort is stable, so rows without a recency column keep the order
        the store returned them in.
        """
        if self.recency_column is None:
            return records
        column = self.recency_column
        return sorted(records, key=lambda r: (r.id, getattr(r, column)))


ORDERS = Table("orders", OrderRecord, recency_column="created_at")
ORDER_ITEMS = Table("order_items", OrderItemRecord, soft_delete_column="deleted_at", recency_column="created_at")
CATALOG_ITEMS = Table("catalog_items", CatalogItem)
NOTIFICATIONS = Table("notifications", NotificationRecord, recency_column="created_at")
ARCHIVED_ORDERS = Table("archived_orders", ArchivedOrderRecord, recency_column="archived_at")
USERS = Table("users", UserRecord)

ALL_TABLES: tuple[Table[Any], ...] = (
    ORDERS,
    ORDER_ITEMS,
    CATALOG_ITEMS,
    NOTIFICATIONS,
    ARCHIVED_ORDERS,
    USERS,
)


@dataclass(frozen=True)
class StoreHandle:
    """Connected client plus the metadata loaded at ``loaded_at``."""

    client: Client
    columns: dict[str, frozenset[str]] = field(default_factory=dict)
    loaded_at: float = 0.0

    def has_table(self, name: str) -> bool:
        return name in self.columns


class StoreConnection:
    """Holds the store handle and the time it was last refreshed.

    ``connect()`` reloads metadata only when the cached handle is older than
    ``ttl_seconds``; otherwise the cached handle is returned as-is.
    """

    def __init__(
        self,
        client_factory: Callable[[], Client],
        ttl_seconds: float,
        tables: Sequence[Table[Any]] = ALL_TABLES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the connection.

        Args:
            client_factory: Returns the remote client; called on each refresh.
            ttl_seconds: How long a loaded handle is reused.
            tables: Tables whose metadata is probed on refresh.
            clock: Monotonic clock, injectable for tests.
        """
        self._client_factory = client_factory
        self.ttl_seconds = ttl_seconds
        self._tables = tuple(tables)
        self._clock = clock
        self._handle: StoreHandle | None = None
        self._last_refresh: float | None = None

    @property
    def last_refresh(self) -> float | None:
        return self._last_refresh

    async def connect(self) -> StoreHandle:
        """Return the cached handle, refreshing it if the TTL has elapsed.

        Raises:
            StoreError: If the store is unreachable during a refresh.
        """
        now = self._clock()
        if (
            self._handle is not None
            and self._last_refresh is not None
            and now - self._last_refresh <= self.ttl_seconds
        ):
            logger.debug("Store metadata refresh skipped (age %.1fs)", now - self._last_refresh)
            return self._handle

        handle = self._load(now)
        self._handle = handle
        self._last_refresh = now
        logger.info("Store metadata loaded for %d tables", len(handle.columns))
        return handle

    def invalidate(self) -> None:
        """Force the next ``connect()`` to reload metadata."""
        self._last_refresh = None

    def _load(self, now: float) -> StoreHandle:
        try:
            client = self._client_factory()
            columns: dict[str, frozenset[str]] = {}
            for table in self._tables:
                response = client.table(table.name).select("*").limit(1).execute()
                sample = response.data[0] if response.data else {}
                columns[table.name] = frozenset(sample.keys())
        except Exception as e:
            logger.error("Store metadata load failed: %s", str(e))
            raise StoreError(f"Record store unreachable: {e}") from e

        return StoreHandle(client=client, columns=columns, loaded_at=now)


class RecordStore:
    """Row-level operations per logical table.

    No retries happen here: a failed remote call raises ``StoreError`` chained
    to the original exception and the caller decides what to do.
    """

    def __init__(self, connection: StoreConnection) -> None:
        self.connection = connection

    async def connect(self) -> StoreHandle:
        return await self.connection.connect()

    async def _client_for(self, table: Table[Any]) -> Client:
        handle = await self.connect()
        if not handle.has_table(table.name):
            raise StoreError(f"Table '{table.name}' not found in store")
        return handle.client

    async def get_rows(self, table: Table[RecordT], include_deleted: bool = False) -> list[RecordT]:
        """Scan every row of a table.

        Args:
            table: Table to scan.
            include_deleted: Include soft-deleted rows.

        Returns:
            list: Validated records.
        """
        client = await self._client_for(table)
        rows: list[dict[str, Any]] = []
        start = 0
        try:
            while True:
                query = client.table(table.name).select("*")
                if table.soft_delete_column and not include_deleted:
                    query = query.is_(table.soft_delete_column, "null")
                response = query.order("id").range(start, start + PAGE_SIZE - 1).execute()
                page = response.data or []
                rows.extend(page)
                if len(page) < PAGE_SIZE:
                    break
                start += PAGE_SIZE
        except Exception as e:
            raise self._wrap("scan", table, e) from e

        return table.newest_last([table.parse(row) for row in rows])

    async def get_row(self, table: Table[RecordT], record_id: str) -> RecordT | None:
        """Fetch one row by id.

        Ids are not unique-constrained; when a racing allocation produced a
        duplicate the most recently created row wins.
        """
        client = await self._client_for(table)
        try:
            query = client.table(table.name).select("*").eq("id", record_id)
            if table.soft_delete_column:
                query = query.is_(table.soft_delete_column, "null")
            response = query.execute()
        except Exception as e:
            raise self._wrap("get", table, e) from e

        rows = response.data or []
        if not rows:
            return None
        return table.newest_last([table.parse(row) for row in rows])[-1]

    async def append_row(self, table: Table[RecordT], record: RecordT) -> RecordT:
        """Insert a new row and return it as stored."""
        client = await self._client_for(table)
        try:
            response = client.table(table.name).insert(table.dump(record)).execute()
        except Exception as e:
            raise self._wrap("append", table, e) from e

        rows = response.data or []
        return table.parse(rows[0]) if rows else record

    async def update_row(self, table: Table[RecordT], record_id: str, fields: dict[str, Any]) -> RecordT | None:
        """Update columns of the row with ``record_id``.

        Returns:
            The updated record, or None if no row matched.
        """
        client = await self._client_for(table)
        payload = to_jsonable_python(fields)
        try:
            query = client.table(table.name).update(payload).eq("id", record_id)
            if table.soft_delete_column:
                query = query.is_(table.soft_delete_column, "null")
            response = query.execute()
        except Exception as e:
            raise self._wrap("update", table, e) from e

        rows = response.data or []
        if not rows:
            return None
        return table.newest_last([table.parse(row) for row in rows])[-1]

    async def soft_delete(self, table: Table[Any], record_id: str) -> bool:
        """Mark a row deleted without removing it, preserving audit history.

        Returns:
            bool: True if a live row was marked.
        """
        if not table.soft_delete_column:
            raise ValueError(f"Table '{table.name}' does not support soft delete")

        client = await self._client_for(table)
        stamp = datetime.now(timezone.utc).isoformat()
        try:
            response = (
                client.table(table.name)
                .update({table.soft_delete_column: stamp})
                .eq("id", record_id)
                .is_(table.soft_delete_column, "null")
                .execute()
            )
        except Exception as e:
            raise self._wrap("soft delete", table, e) from e

        return bool(response.data)

    @staticmethod
    def _wrap(action: str, table: Table[Any], error: Exception) -> StoreError:
        logger.error("Store %s on '%s' failed: %s", action, table.name, str(error))
        return StoreError(f"Store {action} on '{table.name}' failed: {error}")


@lru_cache
def get_record_store() -> RecordStore:
    """Get the process-wide record store wired to the Supabase client."""
    settings = get_settings()
    connection = StoreConnection(
        client_factory=get_supabase_client,
        ttl_seconds=settings.store_metadata_ttl_seconds,
    )
    return RecordStore(connection)
