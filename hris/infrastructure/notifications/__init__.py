"""Channel senders and realtime connection helpers."""

from .manager import NotificationConnectionManager, notification_manager
from .senders import (
    DELIVERED,
    BrowserSender,
    DeliveryFailure,
    DeliveryResult,
    DeliverySuccess,
    EmailSender,
    MobileSender,
    NotificationSender,
    SlackSender,
    default_senders,
    serialize_notification,
)

__all__ = [
    "BrowserSender",
    "DELIVERED",
    "DeliveryFailure",
    "DeliveryResult",
    "DeliverySuccess",
    "EmailSender",
    "MobileSender",
    "NotificationConnectionManager",
    "NotificationSender",
    "SlackSender",
    "default_senders",
    "notification_manager",
    "serialize_notification",
]
