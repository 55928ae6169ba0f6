"""Pytest configuration and fixtures."""

import os
from collections import defaultdict
from collections.abc import Callable, Generator
from datetime import date, datetime, timedelta, timezone
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel
from pydantic_core import to_jsonable_python

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("FRONTEND_URL", "http://localhost:3000")

from orderflow.api.middleware.error_handler import StoreError  # noqa: E402
from orderflow.core.record_store import CATALOG_ITEMS, ORDERS, USERS, Table  # noqa: E402
from orderflow.models import (  # noqa: E402
    CatalogItem,
    KeyStatus,
    OrderRecord,
    OrderStatus,
    PriceOption,
    UserRecord,
    UserRole,
)
from orderflow.schemas.order import OrderFields  # noqa: E402
from orderflow.services.email_outbox import EmailJob  # noqa: E402
from orderflow.services.notification_service import NotificationDispatcher  # noqa: E402
from orderflow.services.order_service import OrderService  # noqa: E402

FIXED_NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


class InMemoryRecordStore:
    """Record store double keeping JSON rows per table.

    Rows go through the same ``Table.parse``/``Table.dump`` as the Supabase
    backed store, so schema handling is exercised. ``fail_on`` holds action
    names ("scan", "get", "append", "update", "soft delete") that raise
    ``StoreError`` instead of running.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.fail_on: set[str] = set()

    def seed(self, table: Table[Any], *records: BaseModel | dict[str, Any]) -> None:
        for record in records:
            row = table.dump(record) if isinstance(record, BaseModel) else dict(record)
            if table.soft_delete_column:
                row.setdefault(table.soft_delete_column, None)
            self.tables[table.name].append(row)

    def raw_rows(self, table: Table[Any]) -> list[dict[str, Any]]:
        return self.tables[table.name]

    def _check(self, action: str, table: Table[Any]) -> None:
        if action in self.fail_on:
            raise StoreError(f"Store {action} on '{table.name}' failed: simulated outage")

    @staticmethod
    def _live(table: Table[Any], row: dict[str, Any], include_deleted: bool = False) -> bool:
        return include_deleted or not table.soft_delete_column or row.get(table.soft_delete_column) is None

    async def connect(self) -> None:
        return None

    async def get_rows(self, table: Table[Any], include_deleted: bool = False) -> list[Any]:
        self._check("scan", table)
        rows = [r for r in self.tables[table.name] if self._live(table, r, include_deleted)]
        return table.newest_last([table.parse(r) for r in sorted(rows, key=lambda r: r["id"])])

    async def get_row(self, table: Table[Any], record_id: str) -> Any:
        self._check("get", table)
        rows = [r for r in self.tables[table.name] if r["id"] == record_id and self._live(table, r)]
        return table.newest_last([table.parse(r) for r in rows])[-1] if rows else None

    async def append_row(self, table: Table[Any], record: BaseModel) -> Any:
        self._check("append", table)
        row = table.dump(record)
        if table.soft_delete_column:
            row[table.soft_delete_column] = None
        self.tables[table.name].append(row)
        return table.parse(row)

    async def update_row(self, table: Table[Any], record_id: str, fields: dict[str, Any]) -> Any:
        self._check("update", table)
        payload = to_jsonable_python(fields)
        matched = [r for r in self.tables[table.name] if r["id"] == record_id and self._live(table, r)]
        for row in matched:
            row.update(payload)
        return table.newest_last([table.parse(r) for r in matched])[-1] if matched else None

    async def soft_delete(self, table: Table[Any], record_id: str) -> bool:
        if not table.soft_delete_column:
            raise ValueError(f"Table '{table.name}' does not support soft delete")
        self._check("soft delete", table)
        matched = [r for r in self.tables[table.name] if r["id"] == record_id and self._live(table, r)]
        for row in matched:
            row[table.soft_delete_column] = FIXED_NOW.isoformat()
        return bool(matched)


class RecordingOutbox:
    """Outbox double that keeps enqueued jobs for assertions."""

    def __init__(self) -> None:
        self.jobs: list[EmailJob] = []

    def enqueue(self, job: EmailJob) -> bool:
        self.jobs.append(job)
        return True

    @property
    def recipients(self) -> list[str]:
        return [r for job in self.jobs for r in job.recipients]


def sample_catalog() -> list[CatalogItem]:
    return [
        CatalogItem(id="ITEM001", name="Key exchange", price=5000, active=True, has_quantity=True),
        CatalogItem(
            id="ITEM002",
            name="Room cleaning",
            price=8800,
            active=True,
            has_area_selection=True,
            price_options=[
                PriceOption(label="under 30㎡", price=8800),
                PriceOption(label="30㎡ to under 50㎡", price=11000),
                PriceOption(label="50㎡ and over", price=15400),
            ],
        ),
        CatalogItem(
            id="ITEM003",
            name="Air conditioner cleaning",
            price=6600,
            active=True,
            has_quantity=True,
            has_area_selection=True,
            price_options=[
                PriceOption(label="under 30㎡", price=6600),
                PriceOption(label="30㎡ to under 50㎡", price=8800),
                PriceOption(label="50㎡ and over", price=13200),
            ],
        ),
        CatalogItem(id="ITEM004", name="Discontinued coating", price=3000, active=False, has_quantity=True),
    ]


def sample_users() -> list[UserRecord]:
    return [
        UserRecord(id="USER001", role=UserRole.ADMIN, company_name="Head office", email="admin1@example.com"),
        UserRecord(id="USER002", role=UserRole.ADMIN, company_name="Head office", email="admin2@example.com"),
        UserRecord(
            id="USER003",
            role=UserRole.ADMIN,
            company_name="Head office",
            email="retired@example.com",
            status="inactive",
        ),
        UserRecord(
            id="USER004",
            role=UserRole.USER,
            company_name="Sakura Realty",
            store_name="Shibuya",
            email="u1@example.com",
        ),
        UserRecord(
            id="USER005",
            role=UserRole.USER,
            company_name="Maple Homes",
            store_name="Ikebukuro",
            email="u2@example.com",
        ),
    ]


OWNER_ID = "USER004"
OTHER_OWNER_ID = "USER005"
ADMIN_EMAILS = {"admin1@example.com", "admin2@example.com"}


@pytest.fixture
def store() -> InMemoryRecordStore:
    """Provide an in-memory store seeded with the catalog and users."""
    memory_store = InMemoryRecordStore()
    memory_store.seed(CATALOG_ITEMS, *sample_catalog())
    memory_store.seed(USERS, *sample_users())
    return memory_store


@pytest.fixture
def outbox() -> RecordingOutbox:
    return RecordingOutbox()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Provide a clock that advances one second per call."""
    ticks = iter(range(1_000_000))
    return lambda: FIXED_NOW + timedelta(seconds=next(ticks))


@pytest.fixture
def dispatcher(
    store: InMemoryRecordStore, outbox: RecordingOutbox, clock: Callable[[], datetime]
) -> NotificationDispatcher:
    return NotificationDispatcher(
        store=store,
        outbox=outbox,
        feed_limit=50,
        frontend_url="http://localhost:3000",
        clock=clock,
    )


@pytest.fixture
def order_service(
    store: InMemoryRecordStore, dispatcher: NotificationDispatcher, clock: Callable[[], datetime]
) -> OrderService:
    return OrderService(store=store, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def order_fields() -> OrderFields:
    """Provide valid fields for a new order."""
    return OrderFields(
        contact_person="Tanaka",
        property_name="Green Heights",
        room_number="203",
        address="1-2-3 Shibuya, Tokyo",
        room_area=45,
        construction_date=date(2024, 6, 20),
        key_location="Shibuya store",
        key_return="Mailbox",
    )


@pytest.fixture
def make_order(store: InMemoryRecordStore) -> Callable[..., OrderRecord]:
    """Provide a factory that seeds an order row directly."""

    def _make_order(
        order_id: str = "ORD001",
        user_id: str = OWNER_ID,
        status: OrderStatus = OrderStatus.AWAITING_SCHEDULE,
        key_status: KeyStatus = KeyStatus.HANDED,
        **overrides: Any,
    ) -> OrderRecord:
        fields: dict[str, Any] = {
            "contact_person": "Tanaka",
            "order_date": date(2024, 5, 30),
            "construction_date": date(2024, 6, 20),
            "property_name": "Green Heights",
            "room_number": "203",
            "address": "1-2-3 Shibuya, Tokyo",
            "room_area": 45,
            "key_location": "Shibuya store",
            "key_return": "Mailbox",
            "created_at": FIXED_NOW - timedelta(days=2),
            "updated_at": FIXED_NOW - timedelta(days=2),
        }
        fields.update(overrides)
        order = OrderRecord(id=order_id, user_id=user_id, status=status, key_status=key_status, **fields)
        store.seed(ORDERS, order)
        return order

    return _make_order


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = mock_response

    with patch("orderflow.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def client(
    mock_supabase_client: MagicMock,
    store: InMemoryRecordStore,
    dispatcher: NotificationDispatcher,
    order_service: OrderService,
) -> Generator[TestClient, None, None]:
    """Provide a test client wired to the in-memory store.

    Yields:
        TestClient: FastAPI test client.
    """
    from orderflow.api.deps import get_catalog_service, get_notification_dispatcher, get_order_service
    from orderflow.main import app
    from orderflow.services.catalog_service import CatalogService

    app.dependency_overrides[get_order_service] = lambda: order_service
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_catalog_service] = lambda: CatalogService(store)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
