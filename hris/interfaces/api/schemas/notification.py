"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from hris.domain.entities import (
    DeliveryStatus,
    NotificationChannel,
    NotificationType,
)


class NotificationRead(BaseModel):
    """Representation of a notification returned to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    related_entity_type: str | None = None
    related_entity_id: int | None = None
    created_at: datetime
    read_at: datetime | None = None
    is_read: bool = False


class NotificationDeliveryRead(BaseModel):
    """State of one channel delivery of a notification."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    notification_id: int
    channel: NotificationChannel
    status: DeliveryStatus
    attempt_count: int
    last_attempt_at: datetime | None = None
    sent_at: datetime | None = None
    error_message: str | None = None
    next_retry_at: datetime | None = None


class UnreadCountResponse(BaseModel):
    count: int


class SuccessResponse(BaseModel):
    success: bool = True


class MarkAllReadResponse(SuccessResponse):
    count: int


__all__ = [
    "MarkAllReadResponse",
    "NotificationDeliveryRead",
    "NotificationRead",
    "SuccessResponse",
    "UnreadCountResponse",
]
