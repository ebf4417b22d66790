"""Helper utilities shared across API route handlers."""

from dataclasses import dataclass

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Page:
    """Pagination window applied to a listing."""

    limit: int
    offset: int


def clamp_page(limit: int, offset: int) -> Page:
    """Return ``limit`` forced into ``1..MAX_PAGE_SIZE`` and a non-negative ``offset``."""

    return Page(limit=min(max(limit, 1), MAX_PAGE_SIZE), offset=max(offset, 0))


def parse_user_id(raw: str | None) -> int | None:
    """Parse the ``userId`` query value of a websocket handshake."""

    if raw is None:
        return None
    try:
        user_id = int(raw)
    except ValueError:
        return None
    return user_id if user_id > 0 else None
