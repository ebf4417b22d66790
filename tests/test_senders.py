"""Tests for the channel senders and the websocket connection manager."""

from __future__ import annotations

import threading
from datetime import datetime

import pytest

from hris.domain.entities import (
    DeliveryStatus,
    Notification,
    NotificationChannel,
    NotificationDelivery,
    NotificationDeliveryRecord,
    NotificationType,
)
from hris.infrastructure.notifications import (
    DELIVERED,
    BrowserSender,
    DeliveryFailure,
    EmailSender,
    MobileSender,
    NotificationConnectionManager,
    NotificationSender,
    SlackSender,
    default_senders,
    serialize_notification,
)
from hris.infrastructure.notifications import senders as senders_module

pytestmark = pytest.mark.anyio


def _delivery(channel: NotificationChannel = NotificationChannel.EMAIL) -> NotificationDelivery:
    notification = Notification(
        id=10,
        user_id=3,
        type=NotificationType.NEW_DIRECT_REPORT,
        title="New Direct Report",
        message="Ann Lee is now reporting to you.",
        related_entity_type="employee",
        related_entity_id=9,
        created_at=datetime(2024, 5, 1, 12, 0),
    )
    record = NotificationDeliveryRecord(
        id=40, notification_id=10, channel=channel, status=DeliveryStatus.PROCESSING
    )
    return NotificationDelivery(notification, record)


class FakeWebSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.accepted = False
        self.broken = broken
        self.messages: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.messages.append(message)


def test_default_senders_cover_every_channel() -> None:
    senders = default_senders()

    assert [sender.channel for sender in senders] == list(NotificationChannel)
    assert all(isinstance(sender, NotificationSender) for sender in senders)


def test_serialize_notification() -> None:
    payload = serialize_notification(_delivery().notification)

    assert payload["id"] == 10
    assert payload["type"] == "NEW_DIRECT_REPORT"
    assert payload["message"] == "Ann Lee is now reporting to you."
    assert payload["created_at"].startswith("2024-05-01T12:00:00")
    assert payload["read_at"] is None


@pytest.mark.parametrize("sender_class", [MobileSender, SlackSender])
async def test_log_only_senders_succeed(sender_class, caplog) -> None:
    sender = sender_class()

    with caplog.at_level("INFO"):
        result = await sender.send(_delivery(sender.channel))

    assert result == DELIVERED
    assert f"{sender.channel.value}: to user_id=3" in caplog.text


async def test_connection_manager_drops_dead_sockets() -> None:
    manager = NotificationConnectionManager()
    alive, dead = FakeWebSocket(), FakeWebSocket(broken=True)
    await manager.connect(3, alive)
    await manager.connect(3, dead)

    reached = await manager.send_to_user(3, {"type": "ping"})

    assert alive.accepted and dead.accepted
    assert reached == 1
    assert alive.messages == [{"type": "ping"}]
    assert manager.connection_count(3) == 1

    manager.disconnect(3, alive)
    assert manager.connection_count(3) == 0
    assert await manager.send_to_user(3, {"type": "ping"}) == 0


async def test_browser_sender_pushes_to_open_connections() -> None:
    manager = NotificationConnectionManager()
    socket = FakeWebSocket()
    await manager.connect(3, socket)

    result = await BrowserSender(manager).send(_delivery(NotificationChannel.BROWSER))

    assert result == DELIVERED
    (message,) = socket.messages
    assert message["type"] == "notification"
    assert message["data"]["id"] == 10


async def test_browser_sender_without_connections_still_succeeds() -> None:
    result = await BrowserSender(NotificationConnectionManager()).send(
        _delivery(NotificationChannel.BROWSER)
    )

    assert result == DELIVERED


async def test_email_sender_only_logs_without_address_lookup(monkeypatch) -> None:
    def unexpected(*args):
        raise AssertionError("send_email must not be called")

    monkeypatch.setattr(senders_module, "send_email", unexpected)

    assert await EmailSender().send(_delivery()) == DELIVERED


async def test_email_sender_uses_sendgrid_when_configured(monkeypatch) -> None:
    sent: list[tuple[str, str, str]] = []

    def fake_send_email(subject: str, html_content: str, recipient: str) -> None:
        sent.append((subject, html_content, recipient))
        return None

    monkeypatch.setattr(senders_module, "is_email_configured", lambda: True)
    monkeypatch.setattr(senders_module, "send_email", fake_send_email)
    sender = EmailSender(address_lookup=lambda user_id: f"user{user_id}@example.com")

    result = await sender.send(_delivery())

    assert result == DELIVERED
    assert sent == [
        (
            "New Direct Report",
            "<p>Ann Lee is now reporting to you.</p>",
            "user3@example.com",
        )
    ]


async def test_email_sender_reports_sendgrid_failure(monkeypatch) -> None:
    monkeypatch.setattr(senders_module, "is_email_configured", lambda: True)
    monkeypatch.setattr(
        senders_module, "send_email", lambda *args: "SendGrid responded with status 500"
    )
    sender = EmailSender(address_lookup=lambda user_id: "user@example.com")

    result = await sender.send(_delivery())

    assert result == DeliveryFailure("SendGrid responded with status 500")


async def test_email_sender_fails_without_known_address(monkeypatch) -> None:
    monkeypatch.setattr(senders_module, "is_email_configured", lambda: True)
    sender = EmailSender(address_lookup=lambda user_id: None)

    result = await sender.send(_delivery())

    assert result == DeliveryFailure("No email address known for user 3")


async def test_email_sender_resolves_addresses_off_the_event_loop(monkeypatch) -> None:
    """The address lookup may hit a database, so it runs in a worker thread."""

    lookup_threads: list[threading.Thread] = []

    def lookup(user_id: int) -> str:
        lookup_threads.append(threading.current_thread())
        return f"user{user_id}@example.com"

    monkeypatch.setattr(senders_module, "is_email_configured", lambda: True)
    monkeypatch.setattr(senders_module, "send_email", lambda *args: None)
    sender = EmailSender(address_lookup=lookup)

    assert await sender.send(_delivery()) == DELIVERED
    assert lookup_threads and lookup_threads[0] is not threading.current_thread()
