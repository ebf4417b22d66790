"""Domain entities exposed by the application."""

from .events import (
    ApplicationEvent,
    ManagerChangedEvent,
    NewDirectReportEvent,
    ReviewReceivedEvent,
    ReviewSubmittedEvent,
)
from .notification import (
    ALL_CHANNELS,
    DEFAULT_MAX_RETRIES,
    TERMINAL_DELIVERY_STATUSES,
    CreateNotificationRequest,
    DeliveryStatus,
    Notification,
    NotificationChannel,
    NotificationDelivery,
    NotificationDeliveryRecord,
    NotificationType,
    retry_backoff_seconds,
)

__all__ = [
    "ALL_CHANNELS",
    "ApplicationEvent",
    "CreateNotificationRequest",
    "DEFAULT_MAX_RETRIES",
    "DeliveryStatus",
    "ManagerChangedEvent",
    "NewDirectReportEvent",
    "Notification",
    "NotificationChannel",
    "NotificationDelivery",
    "NotificationDeliveryRecord",
    "NotificationType",
    "ReviewReceivedEvent",
    "ReviewSubmittedEvent",
    "TERMINAL_DELIVERY_STATUSES",
    "retry_backoff_seconds",
]
