"""Translate domain events into notification requests."""

from __future__ import annotations

from functools import singledispatch

from hris.domain.entities import (
    ApplicationEvent,
    CreateNotificationRequest,
    ManagerChangedEvent,
    NewDirectReportEvent,
    NotificationType,
    ReviewReceivedEvent,
    ReviewSubmittedEvent,
)

RELATED_REVIEW = "review"
RELATED_EMPLOYEE = "employee"
_UNNAMED_EMPLOYEE = "An employee"


@singledispatch
def build_notification_request(event: ApplicationEvent) -> CreateNotificationRequest | None:
    """Return the notification to create for ``event``, or ``None`` if it has none."""

    return None


@build_notification_request.register
def _(event: ReviewSubmittedEvent) -> CreateNotificationRequest:
    return CreateNotificationRequest(
        user_id=event.employee_id,
        type=NotificationType.REVIEW_SUBMITTED,
        title="Performance Review Submitted",
        message="Your performance review has been submitted by your reviewer.",
        related_entity_type=RELATED_REVIEW,
        related_entity_id=event.review_id,
    )


@build_notification_request.register
def _(event: ReviewReceivedEvent) -> CreateNotificationRequest:
    # 360 feedback: the reviewer is the one being told feedback arrived.
    return CreateNotificationRequest(
        user_id=event.reviewer_id,
        type=NotificationType.REVIEW_RECEIVED,
        title="Feedback Received",
        message="You have received performance feedback from a team member.",
        related_entity_type=RELATED_REVIEW,
        related_entity_id=event.review_id,
    )


@build_notification_request.register
def _(event: ManagerChangedEvent) -> CreateNotificationRequest:
    return CreateNotificationRequest(
        user_id=event.employee_id,
        type=NotificationType.MANAGER_CHANGED,
        title="Manager Changed",
        message="Your manager has been updated.",
        related_entity_type=RELATED_EMPLOYEE,
        related_entity_id=event.employee_id,
    )


@build_notification_request.register
def _(event: NewDirectReportEvent) -> CreateNotificationRequest:
    employee_name = (event.employee_name or "").strip() or _UNNAMED_EMPLOYEE
    return CreateNotificationRequest(
        user_id=event.manager_id,
        type=NotificationType.NEW_DIRECT_REPORT,
        title="New Direct Report",
        message=f"{employee_name} is now reporting to you.",
        related_entity_type=RELATED_EMPLOYEE,
        related_entity_id=event.employee_id,
    )


__all__ = ["RELATED_EMPLOYEE", "RELATED_REVIEW", "build_notification_request"]
