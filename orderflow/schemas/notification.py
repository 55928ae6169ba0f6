"""Notification Pydantic schemas for API request/response validation."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from orderflow.models.notification import NotificationType


class NotificationResponse(BaseModel):
    """Schema for notification API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str | None = Field(default=None, description="Owning user; null for broadcasts")
    type: NotificationType
    title: str
    message: str
    read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]


class ReadStateResponse(BaseModel):
    """Schema for the read toggle response."""

    id: str
    read: bool
