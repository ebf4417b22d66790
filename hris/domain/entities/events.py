"""Domain events emitted by employee and review operations."""

from __future__ import annotations

from dataclasses import dataclass


class ApplicationEvent:
    """Base class for every event carried by the event bus."""

    __slots__ = ()


@dataclass(frozen=True)
class ReviewSubmittedEvent(ApplicationEvent):
    review_id: int
    employee_id: int
    reviewer_id: int


@dataclass(frozen=True)
class ReviewReceivedEvent(ApplicationEvent):
    review_id: int
    employee_id: int
    reviewer_id: int


@dataclass(frozen=True)
class ManagerChangedEvent(ApplicationEvent):
    employee_id: int
    old_manager_id: int | None
    new_manager_id: int | None
    employee_name: str | None = None


@dataclass(frozen=True)
class NewDirectReportEvent(ApplicationEvent):
    manager_id: int
    employee_id: int
    employee_name: str | None = None


__all__ = [
    "ApplicationEvent",
    "ManagerChangedEvent",
    "NewDirectReportEvent",
    "ReviewReceivedEvent",
    "ReviewSubmittedEvent",
]
