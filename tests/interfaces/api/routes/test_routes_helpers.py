"""Tests for helper utilities in the notification API routes."""

import pytest

from hris.interfaces.api.routes_helpers import MAX_PAGE_SIZE, clamp_page, parse_user_id


@pytest.mark.parametrize(
    ("limit", "offset", "expected_limit", "expected_offset"),
    [
        (50, 0, 50, 0),
        (0, 0, 1, 0),
        (-3, 10, 1, 10),
        (1000, -1, MAX_PAGE_SIZE, 0),
        (100, 5, 100, 5),
    ],
)
def test_clamp_page(limit, offset, expected_limit, expected_offset):
    """Listings never return more than a page and never start before the first item."""

    page = clamp_page(limit, offset)

    assert page.limit == expected_limit
    assert page.offset == expected_offset


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("7", 7), (None, None), ("", None), ("abc", None), ("0", None), ("-2", None)],
)
def test_parse_user_id(raw, expected):
    assert parse_user_id(raw) == expected
