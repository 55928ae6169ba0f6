"""Notification row model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class NotificationType(str, Enum):
    """Notification categories."""

    ORDER = "order"
    USER = "user"
    STATUS = "status"
    SCHEDULE = "schedule"
    KEY_STATUS = "key_status"
    PAYMENT = "payment"
    SYSTEM = "system"


class NotificationRecord(BaseModel):
    """Notification table row.

    A missing ``user_id`` marks a broadcast visible to every administrator.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str | None = None
    type: NotificationType = NotificationType.SYSTEM
    title: str = ""
    message: str = ""
    read: bool = False
    created_at: datetime

    @field_validator("user_id", mode="before")
    @classmethod
    def _blank_user(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("read", mode="before")
    @classmethod
    def _normalize_read(cls, value: object) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() == "true"

    @property
    def is_broadcast(self) -> bool:
        return self.user_id is None
