"""Helpers employee and review operations use to announce what happened."""

from __future__ import annotations

from hris.domain.entities import (
    ManagerChangedEvent,
    NewDirectReportEvent,
    ReviewReceivedEvent,
    ReviewSubmittedEvent,
)
from hris.infrastructure.events import EventBus


def announce_employee_added(
    bus: EventBus,
    *,
    employee_id: int,
    manager_id: int | None,
    employee_name: str | None = None,
) -> None:
    """Tell the manager of a newly added employee about the new report."""

    if manager_id is None:
        return
    bus.publish(
        NewDirectReportEvent(
            manager_id=manager_id,
            employee_id=employee_id,
            employee_name=employee_name,
        )
    )


def announce_manager_change(
    bus: EventBus,
    *,
    employee_id: int,
    old_manager_id: int | None,
    new_manager_id: int | None,
    employee_name: str | None = None,
) -> None:
    """Publish the manager change and, if there is a new manager, the new report."""

    bus.publish(
        ManagerChangedEvent(
            employee_id=employee_id,
            old_manager_id=old_manager_id,
            new_manager_id=new_manager_id,
            employee_name=employee_name,
        )
    )
    announce_employee_added(
        bus,
        employee_id=employee_id,
        manager_id=new_manager_id,
        employee_name=employee_name,
    )


def announce_review_submitted(
    bus: EventBus, *, review_id: int, employee_id: int, reviewer_id: int
) -> None:
    bus.publish(
        ReviewSubmittedEvent(
            review_id=review_id, employee_id=employee_id, reviewer_id=reviewer_id
        )
    )


def announce_review_received(
    bus: EventBus, *, review_id: int, employee_id: int, reviewer_id: int
) -> None:
    bus.publish(
        ReviewReceivedEvent(
            review_id=review_id, employee_id=employee_id, reviewer_id=reviewer_id
        )
    )


__all__ = [
    "announce_employee_added",
    "announce_manager_change",
    "announce_review_received",
    "announce_review_submitted",
]
