"""Unit tests for the SendGrid email helper utilities."""

from __future__ import annotations

import json
import types

import pytest

from hris.infrastructure import email as email_module


class DummySettings:
    sendgrid_api_key = "SG.fake"
    sendgrid_sender = "sender@example.com"


class UnconfiguredSettings:
    sendgrid_api_key = None
    sendgrid_sender = None


class StubSendGridClient:
    """Stand-in for ``SendGridAPIClient`` returning a successful response."""

    def __init__(self, api_key: str):
        self.api_key = api_key

    def send(self, message):
        return types.SimpleNamespace(status_code=202, body=None)


def test_send_email_without_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    """When SendGrid settings are missing the helper should exit early."""

    monkeypatch.setattr(email_module, "get_settings", lambda: UnconfiguredSettings())

    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") == (
        "SendGrid is not configured"
    )
    assert email_module.is_email_configured() is False


def test_send_email_success(monkeypatch: pytest.MonkeyPatch) -> None:
    """A successful SendGrid response should return ``None``."""

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", StubSendGridClient)

    assert email_module.is_email_configured() is True
    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") is None


def test_send_email_reports_unexpected_status(monkeypatch: pytest.MonkeyPatch) -> None:
    class RejectingClient(StubSendGridClient):
        def send(self, message):
            return types.SimpleNamespace(
                status_code=400, body=b'{"errors": [{"message": "Invalid recipient"}]}'
            )

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", RejectingClient)

    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") == (
        "SendGrid responded with status 400: Invalid recipient"
    )


def test_send_email_logs_forbidden_error(monkeypatch: pytest.MonkeyPatch, caplog):
    """Forbidden responses from SendGrid should surface meaningful log details."""

    class FakeForbiddenError(Exception):
        status_code = 403
        body = json.dumps(
            {
                "errors": [
                    {
                        "message": "The provided authorization grant is invalid.",
                        "help": "https://sendgrid.com/docs/API_Reference/Web_API_v3/How_To_Use_The_Web_API_v3/authentication.html",
                    }
                ]
            }
        ).encode()

    class FailingClient(StubSendGridClient):
        def send(self, message):
            raise FakeForbiddenError()

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", FailingClient)

    with caplog.at_level("ERROR"):
        result = email_module.send_email("Subject", "<p>Body</p>", "user@example.com")

    assert "status 403" in result
    assert "status 403" in caplog.text
    assert "authorization grant is invalid" in caplog.text


def test_send_email_network_error(monkeypatch: pytest.MonkeyPatch) -> None:
    class UnreachableClient(StubSendGridClient):
        def send(self, message):
            raise ConnectionError("connection refused")

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", UnreachableClient)

    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") == (
        "SendGrid request failed: connection refused"
    )


def test_render_html_escapes_each_line() -> None:
    assert email_module.render_html("Hello <team>\n\n  Bye & thanks ") == (
        "<p>Hello &lt;team&gt;</p><p>Bye &amp; thanks</p>"
    )
