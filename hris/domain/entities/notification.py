"""Domain entities describing user notifications and their channel deliveries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final, Sequence


class NotificationType(str, Enum):
    """Kind of domain occurrence a notification reports."""

    REVIEW_SUBMITTED = "REVIEW_SUBMITTED"
    REVIEW_RECEIVED = "REVIEW_RECEIVED"
    MANAGER_CHANGED = "MANAGER_CHANGED"
    NEW_DIRECT_REPORT = "NEW_DIRECT_REPORT"


class NotificationChannel(str, Enum):
    """Transmission medium used for a single delivery."""

    EMAIL = "EMAIL"
    BROWSER = "BROWSER"
    MOBILE = "MOBILE"
    SLACK = "SLACK"


class DeliveryStatus(str, Enum):
    """States of the per-channel delivery state machine."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SENT = "SENT"
    FAILED = "FAILED"


ALL_CHANNELS: Final[tuple[NotificationChannel, ...]] = tuple(NotificationChannel)
TERMINAL_DELIVERY_STATUSES: Final[frozenset[DeliveryStatus]] = frozenset(
    {DeliveryStatus.SENT, DeliveryStatus.FAILED}
)
DEFAULT_MAX_RETRIES: Final[int] = 5


def retry_backoff_seconds(attempt_count: int) -> int:
    """Return the delay before the next attempt after ``attempt_count`` failures.

    Doubles per failure starting at one second: 1, 2, 4, 8, 16...
    """

    if attempt_count < 1:
        return 0
    return 1 << (attempt_count - 1)


@dataclass
class Notification:
    """User-facing message; immutable apart from ``read_at``."""

    id: int | None
    user_id: int
    type: NotificationType
    title: str
    message: str
    related_entity_type: str | None = None
    related_entity_id: int | None = None
    created_at: datetime | None = None
    read_at: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


@dataclass
class NotificationDeliveryRecord:
    """Attempt tracking for one notification on one channel."""

    id: int
    notification_id: int
    channel: NotificationChannel
    status: DeliveryStatus
    attempt_count: int = 0
    attempt_offset: int = 0
    last_attempt_at: datetime | None = None
    sent_at: datetime | None = None
    error_message: str | None = None
    next_retry_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_DELIVERY_STATUSES

    @property
    def attempts_in_budget(self) -> int:
        """Attempts made since the delivery was created or last re-armed."""

        return self.attempt_count - self.attempt_offset


@dataclass
class CreateNotificationRequest:
    """Input for creating a notification together with its deliveries."""

    user_id: int
    type: NotificationType
    title: str
    message: str
    related_entity_type: str | None = None
    related_entity_id: int | None = None
    channels: Sequence[NotificationChannel] = ALL_CHANNELS

    def unique_channels(self) -> list[NotificationChannel]:
        """Return the requested channels without duplicates preserving order."""

        unique: list[NotificationChannel] = []
        for channel in self.channels:
            channel = NotificationChannel(channel)
            if channel not in unique:
                unique.append(channel)
        if not unique:
            raise ValueError("At least one delivery channel is required")
        return unique


@dataclass(frozen=True)
class NotificationDelivery:
    """What a channel sender receives: the message and the delivery being attempted."""

    notification: Notification
    delivery: NotificationDeliveryRecord


__all__ = [
    "ALL_CHANNELS",
    "CreateNotificationRequest",
    "DEFAULT_MAX_RETRIES",
    "DeliveryStatus",
    "Notification",
    "NotificationChannel",
    "NotificationDelivery",
    "NotificationDeliveryRecord",
    "NotificationType",
    "TERMINAL_DELIVERY_STATUSES",
    "retry_backoff_seconds",
]
