"""ORM models used by the application infrastructure."""

from .notification import NotificationModel
from .notification_delivery import NotificationDeliveryModel

__all__ = [
    "NotificationDeliveryModel",
    "NotificationModel",
]
