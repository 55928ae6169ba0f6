"""Table row models for the record store."""

from orderflow.models.catalog import CatalogItem, PriceOption
from orderflow.models.event import EventType, LifecycleEvent
from orderflow.models.notification import NotificationRecord, NotificationType
from orderflow.models.order import (
    TERMINAL_STATUSES,
    ArchivedLineItem,
    ArchivedOrderRecord,
    KeyStatus,
    OrderItemRecord,
    OrderRecord,
    OrderStatus,
)
from orderflow.models.user import UserRecord, UserRole

__all__ = [
    "ArchivedLineItem",
    "ArchivedOrderRecord",
    "CatalogItem",
    "EventType",
    "KeyStatus",
    "LifecycleEvent",
    "NotificationRecord",
    "NotificationType",
    "OrderItemRecord",
    "OrderRecord",
    "OrderStatus",
    "PriceOption",
    "TERMINAL_STATUSES",
    "UserRecord",
    "UserRole",
]
