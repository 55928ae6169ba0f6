"""Order table row models and their closed status enumerations."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderStatus(str, Enum):
    """Order status values as stored in the orders table."""

    AWAITING_SCHEDULE = "awaiting_schedule"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    INVOICED = "invoiced"
    PAID = "paid"
    CANCELLED_BY_ADMIN = "cancelled_by_admin"
    CANCELLED_BY_REQUESTER = "cancelled_by_requester"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.PAID,
        OrderStatus.CANCELLED_BY_ADMIN,
        OrderStatus.CANCELLED_BY_REQUESTER,
    }
)


class KeyStatus(str, Enum):
    """Physical key custody.

    ``handed``: the key has not reached the office yet.
    ``pending``: the key is held at the office.
    """

    PENDING = "pending"
    HANDED = "handed"


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class OrderRecord(BaseModel):
    """Order table row representation."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    contact_person: str = ""
    order_date: date
    construction_date: date
    property_name: str = ""
    room_number: str = ""
    address: str = ""
    room_area: float | None = None
    key_location: str = ""
    key_return: str = ""
    key_status: KeyStatus = KeyStatus.HANDED
    status: OrderStatus = OrderStatus.AWAITING_SCHEDULE
    notes: str = ""
    created_at: datetime
    updated_at: datetime

    @field_validator("room_area", mode="before")
    @classmethod
    def _room_area_blank(cls, value: object) -> object:
        return _blank_to_none(value)

    @field_validator("notes", "contact_person", "room_number", "key_location", "key_return", mode="before")
    @classmethod
    def _text_none(cls, value: object) -> object:
        return "" if value is None else value


class OrderItemRecord(BaseModel):
    """Order line item row.

    ``price`` is the unit price resolved when the line was written and is
    never recomputed from the catalog.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    order_id: str
    item_id: str
    quantity: int = Field(ge=1)
    price: int = Field(ge=0)
    selected_area_option: str | None = None
    created_at: datetime

    @field_validator("selected_area_option", mode="before")
    @classmethod
    def _option_blank(cls, value: object) -> object:
        return _blank_to_none(value)

    @property
    def amount(self) -> int:
        return self.price * self.quantity


class ArchivedLineItem(BaseModel):
    """Line item captured inside an archive snapshot."""

    id: str
    item_id: str
    quantity: int
    price: int
    selected_area_option: str | None = None


class ArchivedOrderRecord(OrderRecord):
    """Immutable snapshot of a paid order and its line items."""

    line_items: list[ArchivedLineItem] = Field(default_factory=list)
    total_amount: int = 0
    archived_at: datetime
