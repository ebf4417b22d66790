import logging
from collections.abc import Iterable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from hris.application.use_cases.notifications import NotificationService
from hris.config import Settings, get_settings
from hris.infrastructure.database import (
    build_session_factory,
    engine as default_engine,
    initialize_database,
)
from hris.infrastructure.events import EventBus
from hris.infrastructure.notifications import NotificationSender
from hris.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


def create_app(
    *,
    settings: Settings | None = None,
    engine: Engine | None = None,
    senders: Iterable[NotificationSender] | None = None,
) -> FastAPI:
    """Create the FastAPI application and wire the notification pipeline to its lifespan."""

    settings = settings or get_settings()
    bind = engine or default_engine
    session_factory = build_session_factory(bind)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create tables, start the event bus and the delivery service, stop both on exit."""

        initialize_database(bind)

        event_bus = EventBus()
        event_bus.start()
        service = NotificationService.from_settings(
            event_bus,
            session_factory=session_factory,
            senders=None if senders is None else list(senders),
            settings=settings,
        )
        service.start()
        app.state.event_bus = event_bus
        app.state.notification_service = service
        try:
            yield
        finally:
            await service.stop()
            event_bus.close()
            app.state.notification_service = None
            app.state.event_bus = None
            if engine is None:
                bind.dispose()
            logger.info("Application shut down")

    app = FastAPI(title="HRIS Notifications", lifespan=lifespan)
    app.state.session_factory = session_factory
    app.state.event_bus = None
    app.state.notification_service = None

    register_routes(app)
    return app


app = create_app()
