"""Shared fixtures: a throwaway SQLite database per test."""

from __future__ import annotations

import pytest

from hris.infrastructure.database import (
    build_engine,
    build_session_factory,
    initialize_database,
)
from hris.infrastructure.repositories import NotificationRepository


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def engine(tmp_path):
    """Return an engine bound to a fresh database file with every table created."""

    engine = build_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def repository(session_factory):
    session = session_factory()
    try:
        yield NotificationRepository(session)
    finally:
        session.close()
