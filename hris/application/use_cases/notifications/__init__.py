"""Notification use cases: event mapping, delivery service and event producers."""

from .events import RELATED_EMPLOYEE, RELATED_REVIEW, build_notification_request
from .failed_deliveries import list_failed_deliveries, retry_failed_deliveries
from .publishers import (
    announce_employee_added,
    announce_manager_change,
    announce_review_received,
    announce_review_submitted,
)
from .service import NotificationService, ServiceState

__all__ = [
    "NotificationService",
    "RELATED_EMPLOYEE",
    "RELATED_REVIEW",
    "ServiceState",
    "announce_employee_added",
    "announce_manager_change",
    "announce_review_received",
    "announce_review_submitted",
    "build_notification_request",
    "list_failed_deliveries",
    "retry_failed_deliveries",
]
