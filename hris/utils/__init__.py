"""Utility helpers for reusable functionality."""

from .datetime import (
    ensure_app_timezone,
    get_app_timezone,
    storage_now,
    to_storage_datetime,
    utc_now,
)

__all__ = [
    "ensure_app_timezone",
    "get_app_timezone",
    "storage_now",
    "to_storage_datetime",
    "utc_now",
]
