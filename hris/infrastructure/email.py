"""SendGrid transport used by the email notification channel."""

from __future__ import annotations

import json
import logging
from html import escape
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from hris.config import get_settings

logger = logging.getLogger(__name__)


def is_email_configured() -> bool:
    settings = get_settings()
    return bool(settings.sendgrid_api_key and settings.sendgrid_sender)


def _describe_sendgrid_error(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            body = json.loads(body)
        except json.JSONDecodeError:
            return body
    if not isinstance(body, dict):
        return None

    messages = [
        str(item["message"])
        for item in body.get("errors") or []
        if isinstance(item, dict) and item.get("message")
    ]
    if messages:
        return "; ".join(messages)
    return json.dumps(body)


def _failure_reason(status_code: Any, body: Any) -> str:
    details = _describe_sendgrid_error(body)
    if status_code and details:
        return f"SendGrid responded with status {status_code}: {details}"
    if status_code:
        return f"SendGrid responded with status {status_code}"
    return f"SendGrid request failed: {details or 'unknown error'}"


def render_html(message: str) -> str:
    """Wrap a plain-text notification message in minimal HTML."""

    paragraphs = (line.strip() for line in message.splitlines())
    return "".join(f"<p>{escape(line)}</p>" for line in paragraphs if line)


def send_email(subject: str, html_content: str, recipient: str) -> str | None:
    """Send an email through SendGrid.

    Returns ``None`` on success, otherwise the reason the email was not sent.
    Blocking; call it from a worker thread inside async code.
    """

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        return "SendGrid is not configured"

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:  # sendgrid raises HTTPError subclasses and network errors
        reason = _failure_reason(getattr(exc, "status_code", None), getattr(exc, "body", None))
        if reason.endswith("unknown error"):
            reason = f"SendGrid request failed: {exc}"
        logger.error("Email to %s not sent: %s", recipient, reason)
        return reason

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        reason = _failure_reason(status_code, getattr(response, "body", None))
        logger.error("Email to %s not sent: %s", recipient, reason)
        return reason

    return None


__all__ = ["is_email_configured", "render_html", "send_email"]
