"""Aggregate application use cases."""

from .notifications import (
    NotificationService,
    list_failed_deliveries,
    retry_failed_deliveries,
)

__all__ = [
    "NotificationService",
    "list_failed_deliveries",
    "retry_failed_deliveries",
]
