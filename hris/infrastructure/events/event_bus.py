"""In-process publish/subscribe bus for domain events."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable

from hris.domain.entities import ApplicationEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[ApplicationEvent], Awaitable[None] | None]


class EventBus:
    """Fan out published events to registered handlers on a single dispatch task.

    Events are dispatched strictly in publish order; all handlers of one event
    finish before the next event is taken. A failing handler is logged and
    skipped, it never reaches the publisher and never stops the bus. Handlers
    should be registered at startup, before anything is published.

    Single-instance only: events are not shared between processes.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[ApplicationEvent] = asyncio.Queue()
        self._handlers: list[EventHandler] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the dispatch task on the running event loop."""

        if self._closed:
            raise RuntimeError("Event bus is closed")
        if self.is_running:
            return
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._dispatch_loop(), name="event-bus-dispatch")
        logger.info("Event bus started with %d handler(s)", len(self._handlers))

    def register_handler(self, handler: EventHandler) -> None:
        """Add ``handler``; handlers run in registration order."""

        if handler in self._handlers:
            return
        self._handlers.append(handler)
        logger.info("Registered event handler %s", getattr(handler, "__qualname__", handler))

    def publish(self, event: ApplicationEvent) -> None:
        """Hand ``event`` over for asynchronous dispatch and return immediately.

        Safe to call from the event loop, from worker threads (synchronous
        FastAPI routes) and before :meth:`start` (events are buffered).
        """

        if self._closed:
            logger.warning("Event bus closed; dropping %s", type(event).__name__)
            return

        loop = self._loop
        if loop is None:
            self._queue.put_nowait(event)
        else:
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is loop:
                self._queue.put_nowait(event)
            else:
                try:
                    loop.call_soon_threadsafe(self._queue.put_nowait, event)
                except RuntimeError:
                    logger.error("Failed to publish %s: event loop is closed", type(event).__name__)
                    return
        logger.debug("Published event %s", type(event).__name__)

    async def join(self) -> None:
        """Wait until every event published so far has been dispatched."""

        await self._queue.join()

    def close(self) -> None:
        """Stop accepting events and terminate the dispatch task."""

        if self._closed:
            return
        self._closed = True
        if self._task is not None:
            self._task.cancel()
        logger.info("Event bus closed")

    async def _dispatch_loop(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
            finally:
                self._queue.task_done()

    async def _dispatch(self, event: ApplicationEvent) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error handling event %s", type(event).__name__)


__all__ = ["EventBus", "EventHandler"]
