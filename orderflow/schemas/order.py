"""Order Pydantic schemas for engine inputs and API request/response models."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from orderflow.models.order import KeyStatus, OrderStatus


class LineItemRequest(BaseModel):
    """One requested line item; the price is resolved server-side."""

    item_id: str = Field(min_length=1, description="Catalog item id")
    quantity: int = Field(default=1, ge=1, description="Quantity ordered")
    selected_area_option: str | None = Field(default=None, description="Explicit area tier label")


class OrderFields(BaseModel):
    """Fields supplied when an order is created."""

    contact_person: str = Field(min_length=1, description="Person in charge of this order")
    property_name: str = Field(min_length=1, description="Property name")
    room_number: str = Field(min_length=1, description="Room number")
    address: str = Field(min_length=1, description="Property address")
    room_area: float | None = Field(default=None, ge=0, description="Room area in m²")
    construction_date: date = Field(description="Scheduled construction date")
    key_location: str = Field(min_length=1, description="Where the key is picked up")
    key_return: str = Field(min_length=1, description="Where the key is returned")
    notes: str = Field(default="", description="Free-text notes")
    status: OrderStatus = Field(
        default=OrderStatus.AWAITING_SCHEDULE,
        description="Initial status; awaiting_schedule or scheduled",
    )


class OrderFieldsUpdate(BaseModel):
    """Partial order update. Unset fields are left unchanged."""

    contact_person: str | None = None
    property_name: str | None = None
    room_number: str | None = None
    address: str | None = None
    room_area: float | None = Field(default=None, ge=0)
    construction_date: date | None = None
    key_location: str | None = None
    key_return: str | None = None
    notes: str | None = None
    status: OrderStatus | None = None


class OrderCreateRequest(OrderFields):
    """Schema for POST /orders."""

    line_items: list[LineItemRequest] = Field(default_factory=list, description="Requested line items")


class OrderUpdateRequest(OrderFieldsUpdate):
    """Schema for PUT /orders/{order_id}.

    ``line_items`` replaces the full set when present; omit it to keep the
    existing items.
    """

    line_items: list[LineItemRequest] | None = None


class StatusUpdateRequest(BaseModel):
    """Schema for POST /orders/{order_id}/status."""

    status: OrderStatus


class KeyStatusUpdateRequest(BaseModel):
    """Schema for PATCH /orders/{order_id}/key-status."""

    key_status: KeyStatus
    confirmed: bool = Field(default=False, description="Caller confirmed the key arrival")


class OrderItemResponse(BaseModel):
    """Schema for a stored line item."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    item_id: str
    quantity: int
    price: int = Field(description="Unit price stamped at write time")
    selected_area_option: str | None = None


class OrderResponse(BaseModel):
    """Schema for order API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    contact_person: str
    order_date: date
    construction_date: date
    property_name: str
    room_number: str
    address: str
    room_area: float | None = None
    key_location: str
    key_return: str
    key_status: KeyStatus
    status: OrderStatus
    notes: str
    created_at: datetime
    updated_at: datetime


class OrderDetailResponse(OrderResponse):
    """Order with its line items and total."""

    line_items: list[OrderItemResponse] = Field(default_factory=list)
    total_amount: int = 0


class OrderListResponse(BaseModel):
    """Schema for order list API responses."""

    items: list[OrderResponse]


class ArchivedOrderResponse(OrderDetailResponse):
    """Schema for an archived order snapshot."""

    archived_at: datetime


class ArchivedOrderListResponse(BaseModel):
    items: list[ArchivedOrderResponse]
