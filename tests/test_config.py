"""Tests for settings validation and timezone helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from hris.application.use_cases.notifications import NotificationService
from hris.config import Settings
from hris.infrastructure.events import EventBus
from hris.utils import datetime as datetime_utils


def test_sendgrid_settings_must_be_paired() -> None:
    with pytest.raises(ValidationError):
        Settings(sendgrid_api_key="SG.fake", sendgrid_sender=None)

    with pytest.raises(ValidationError):
        Settings(sendgrid_api_key="SG.fake", sendgrid_sender="not-an-address")

    settings = Settings(sendgrid_api_key="SG.fake", sendgrid_sender="hr@example.com")
    assert settings.sendgrid_sender == "hr@example.com"


def test_notification_settings_reject_non_positive_values() -> None:
    with pytest.raises(ValidationError):
        Settings(notification_max_retries=0)
    with pytest.raises(ValidationError):
        Settings(notification_sweep_interval_seconds=-1)


def test_service_from_settings(session_factory) -> None:
    settings = Settings(
        notification_max_retries=7,
        notification_max_concurrent_deliveries=4,
        notification_stale_processing_seconds=30,
        notification_sweep_interval_seconds=0,
    )

    service = NotificationService.from_settings(
        EventBus(), session_factory=session_factory, settings=settings
    )

    assert service._max_retries == 7
    assert service._max_concurrent_deliveries == 4
    assert service._stale_processing_after == timedelta(seconds=30)
    assert service._sweep_interval is None
    assert len(service.channels) == 4


@pytest.mark.parametrize(
    ("name", "offset"),
    [
        ("UTC", timedelta(0)),
        ("UTC+02:00", timedelta(hours=2)),
        ("GMT-0530", timedelta(hours=-5, minutes=-30)),
        ("Not/AZone", timedelta(0)),
    ],
)
def test_resolve_timezone(monkeypatch, name, offset) -> None:
    monkeypatch.setattr(
        datetime_utils, "get_settings", lambda: Settings(app_timezone=name)
    )
    datetime_utils.get_app_timezone.cache_clear()
    try:
        moment = datetime(2024, 1, 15, 12, 0)
        assert datetime_utils.ensure_app_timezone(moment).utcoffset() == offset
        assert datetime_utils.to_storage_datetime(
            datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        ) == moment
    finally:
        datetime_utils.get_app_timezone.cache_clear()
