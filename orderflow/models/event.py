"""Lifecycle events emitted after a committed mutation."""

from dataclasses import dataclass
from enum import Enum

from orderflow.models.order import OrderRecord
from orderflow.models.user import UserRecord


class EventType(str, Enum):
    ORDER_CREATED = "order_created"
    USER_REGISTERED = "user_registered"
    STATUS_CHANGED = "status_changed"
    KEY_STATUS_CHANGED = "key_status_changed"
    SCHEDULE_CHANGED = "schedule_changed"


@dataclass(frozen=True)
class LifecycleEvent:
    """A state change the notification dispatcher fans out.

    ``old_value``/``new_value`` carry the changed status, key status or
    construction date as stored strings.
    """

    type: EventType
    order: OrderRecord | None = None
    user: UserRecord | None = None
    old_value: str | None = None
    new_value: str | None = None

    @classmethod
    def order_created(cls, order: OrderRecord) -> "LifecycleEvent":
        return cls(type=EventType.ORDER_CREATED, order=order, new_value=order.status.value)

    @classmethod
    def user_registered(cls, user: UserRecord) -> "LifecycleEvent":
        return cls(type=EventType.USER_REGISTERED, user=user)

    @classmethod
    def status_changed(cls, order: OrderRecord, old: str, new: str) -> "LifecycleEvent":
        return cls(type=EventType.STATUS_CHANGED, order=order, old_value=old, new_value=new)

    @classmethod
    def key_status_changed(cls, order: OrderRecord, old: str, new: str) -> "LifecycleEvent":
        return cls(type=EventType.KEY_STATUS_CHANGED, order=order, old_value=old, new_value=new)

    @classmethod
    def schedule_changed(cls, order: OrderRecord, old: str, new: str) -> "LifecycleEvent":
        return cls(type=EventType.SCHEDULE_CHANGED, order=order, old_value=old, new_value=new)
