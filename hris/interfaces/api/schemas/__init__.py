"""Pydantic schemas exposed by the API."""

from .health import HealthResponse
from .notification import (
    MarkAllReadResponse,
    NotificationDeliveryRead,
    NotificationRead,
    SuccessResponse,
    UnreadCountResponse,
)

__all__ = [
    "HealthResponse",
    "MarkAllReadResponse",
    "NotificationDeliveryRead",
    "NotificationRead",
    "SuccessResponse",
    "UnreadCountResponse",
]
