"""FastAPI dependency utilities."""

from collections.abc import Generator

from fastapi.requests import HTTPConnection
from sqlalchemy.orm import Session, sessionmaker


def get_session_factory(connection: HTTPConnection) -> sessionmaker[Session]:
    """Return the session factory the application was created with."""

    return connection.app.state.session_factory


def get_db(connection: HTTPConnection) -> Generator[Session, None, None]:
    """Yield a database session from the application's factory and close it afterwards."""

    db = get_session_factory(connection)()
    try:
        yield db
    finally:
        db.close()


__all__ = [
    "get_db",
    "get_session_factory",
]
