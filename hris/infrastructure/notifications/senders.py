"""Channel senders that transmit one notification delivery each.

Every sender handles exactly one :class:`NotificationChannel`. Ordinary
transport problems are reported as :class:`DeliveryFailure`, never raised;
the delivery pipeline treats any exception that still escapes as a failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from anyio import to_thread

from hris.domain.entities import Notification, NotificationChannel, NotificationDelivery
from hris.infrastructure.email import is_email_configured, render_html, send_email
from hris.utils import ensure_app_timezone

from .manager import NotificationConnectionManager, notification_manager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliverySuccess:
    """The channel accepted the message."""


@dataclass(frozen=True)
class DeliveryFailure:
    """The channel rejected the message; ``error`` is stored on the delivery."""

    error: str


DeliveryResult = DeliverySuccess | DeliveryFailure

DELIVERED = DeliverySuccess()

AddressLookup = Callable[[int], str | None]


@runtime_checkable
class NotificationSender(Protocol):
    """Capability interface for transmitting deliveries on one channel."""

    channel: NotificationChannel

    async def send(self, delivery: NotificationDelivery) -> DeliveryResult:
        ...


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the JSON representation pushed to browser clients."""

    created_at = ensure_app_timezone(notification.created_at)
    read_at = ensure_app_timezone(notification.read_at)
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "related_entity_type": notification.related_entity_type,
        "related_entity_id": notification.related_entity_id,
        "created_at": created_at.isoformat() if created_at else None,
        "read_at": read_at.isoformat() if read_at else None,
    }


class EmailSender:
    """Email channel.

    Without SendGrid settings or an ``address_lookup`` the message is only
    logged. Otherwise the recipient address is resolved through
    ``address_lookup`` and the email is sent via SendGrid in a worker thread.
    """

    channel = NotificationChannel.EMAIL

    def __init__(self, address_lookup: AddressLookup | None = None) -> None:
        self._address_lookup = address_lookup

    async def send(self, delivery: NotificationDelivery) -> DeliveryResult:
        notification = delivery.notification
        logger.info(
            "EMAIL: to user_id=%s | subject=%s | message=%s",
            notification.user_id,
            notification.title,
            notification.message,
        )
        if self._address_lookup is None or not is_email_configured():
            return DELIVERED

        address = await to_thread.run_sync(self._address_lookup, notification.user_id)
        if not address:
            return DeliveryFailure(f"No email address known for user {notification.user_id}")

        reason = await to_thread.run_sync(
            send_email, notification.title, render_html(notification.message), address
        )
        if reason is not None:
            return DeliveryFailure(reason)
        return DELIVERED


class BrowserSender:
    """Browser channel: pushes to open websockets of the recipient.

    A user with no open socket still gets the notification through the
    notifications API, so an empty push counts as delivered.
    """

    channel = NotificationChannel.BROWSER

    def __init__(self, manager: NotificationConnectionManager | None = None) -> None:
        self._manager = manager or notification_manager

    async def send(self, delivery: NotificationDelivery) -> DeliveryResult:
        notification = delivery.notification
        reached = await self._manager.send_to_user(
            notification.user_id,
            {"type": "notification", "data": serialize_notification(notification)},
        )
        logger.info(
            "BROWSER: to user_id=%s | type=%s | title=%s | open connections=%d",
            notification.user_id,
            notification.type.value,
            notification.title,
            reached,
        )
        return DELIVERED


class MobileSender:
    """Mobile push channel; logs the push that FCM/APNs would carry."""

    channel = NotificationChannel.MOBILE

    async def send(self, delivery: NotificationDelivery) -> DeliveryResult:
        notification = delivery.notification
        logger.info(
            "MOBILE: to user_id=%s | type=%s | title=%s | message=%s",
            notification.user_id,
            notification.type.value,
            notification.title,
            notification.message,
        )
        return DELIVERED


class SlackSender:
    channel = NotificationChannel.SLACK

    async def send(self, delivery: NotificationDelivery) -> DeliveryResult:
        notification = delivery.notification
        logger.info(
            "SLACK: to user_id=%s | type=%s | message=%s - %s",
            notification.user_id,
            notification.type.value,
            notification.title,
            notification.message,
        )
        return DELIVERED


def default_senders(
    *,
    address_lookup: AddressLookup | None = None,
    manager: NotificationConnectionManager | None = None,
) -> list[NotificationSender]:
    """Return one sender per channel."""

    return [
        EmailSender(address_lookup=address_lookup),
        BrowserSender(manager=manager),
        MobileSender(),
        SlackSender(),
    ]


__all__ = [
    "BrowserSender",
    "DELIVERED",
    "DeliveryFailure",
    "DeliveryResult",
    "DeliverySuccess",
    "EmailSender",
    "MobileSender",
    "NotificationSender",
    "SlackSender",
    "default_senders",
    "serialize_notification",
]
