"""Durable, asynchronous fan-out of notifications to delivery channels."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Iterable
from datetime import timedelta
from enum import Enum
from typing import Any, TypeVar

import anyio
from anyio import to_thread
from sqlalchemy.orm import Session

from hris.config import Settings, get_settings
from hris.domain.entities import (
    ApplicationEvent,
    CreateNotificationRequest,
    DEFAULT_MAX_RETRIES,
    NotificationChannel,
    NotificationDelivery,
    retry_backoff_seconds,
)
from hris.infrastructure.notifications import (
    DeliveryFailure,
    NotificationSender,
    default_senders,
)
from hris.infrastructure.events import EventBus
from hris.infrastructure.repositories import NotificationRepository

from .events import build_notification_request

logger = logging.getLogger(__name__)

T = TypeVar("T")

SessionFactory = Callable[[], Session]


class ServiceState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class NotificationService:
    """Turn domain events into notifications and push them through every channel.

    Each notification is persisted together with one delivery row per channel
    before anything is sent, so a crash never loses a delivery: the startup
    recovery scan and the periodic maintenance sweep pick up whatever was left
    ``PENDING`` (or abandoned in ``PROCESSING``). Sends happen on background
    tasks, bounded by ``max_concurrent_deliveries``; the store's
    compare-and-set on ``PENDING`` guarantees that a delivery enqueued twice
    is only sent once.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        senders: Iterable[NotificationSender],
        event_bus: EventBus,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_concurrent_deliveries: int = 32,
        recovery_batch_size: int = 1000,
        stale_processing_after: timedelta = timedelta(minutes=5),
        sweep_interval: float | None = 60.0,
        backoff: Callable[[int], float] = retry_backoff_seconds,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if max_concurrent_deliveries < 1:
            raise ValueError("max_concurrent_deliveries must be at least 1")

        self._session_factory = session_factory
        self._senders: dict[NotificationChannel, NotificationSender] = {
            sender.channel: sender for sender in senders
        }
        self._event_bus = event_bus
        self._max_retries = max_retries
        self._max_concurrent_deliveries = max_concurrent_deliveries
        self._recovery_batch_size = recovery_batch_size
        self._stale_processing_after = stale_processing_after
        self._sweep_interval = sweep_interval or None
        self._backoff = backoff

        self._state = ServiceState.IDLE
        self._handler_registered = False
        self._queue: asyncio.Queue[int] | None = None
        self._semaphore: asyncio.Semaphore | None = None
        self._idle: asyncio.Event | None = None
        self._in_flight = 0
        self._tasks: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_settings(
        cls,
        event_bus: EventBus,
        *,
        session_factory: SessionFactory | None = None,
        senders: Iterable[NotificationSender] | None = None,
        settings: Settings | None = None,
    ) -> "NotificationService":
        settings = settings or get_settings()
        if session_factory is None:
            from hris.infrastructure.database import SessionLocal

            session_factory = SessionLocal
        return cls(
            session_factory,
            default_senders() if senders is None else senders,
            event_bus,
            max_retries=settings.notification_max_retries,
            max_concurrent_deliveries=settings.notification_max_concurrent_deliveries,
            recovery_batch_size=settings.notification_recovery_batch_size,
            stale_processing_after=timedelta(
                seconds=settings.notification_stale_processing_seconds
            ),
            sweep_interval=settings.notification_sweep_interval_seconds,
        )

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ServiceState.RUNNING

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._senders)

    # ------------------ Lifecycle ------------------

    def start(self) -> None:
        """Start the queue consumer, the recovery scan and the maintenance sweep.

        Must be called from the event loop that will run the service. Calling
        it on a running service does nothing.
        """

        if self._state is ServiceState.RUNNING:
            return

        self._queue = asyncio.Queue()
        self._semaphore = asyncio.Semaphore(self._max_concurrent_deliveries)
        self._idle = asyncio.Event()
        self._idle.set()
        self._in_flight = 0
        self._state = ServiceState.RUNNING

        if not self._handler_registered:
            self._event_bus.register_handler(self.handle_event)
            self._handler_registered = True

        self._spawn(self._consume_queue(), name="notification-queue-consumer")
        self._track(1)
        self._spawn(self._recover_pending(), name="notification-recovery")
        if self._sweep_interval is not None:
            self._spawn(self._sweep_periodically(), name="notification-sweep")

        logger.info(
            "Notification service started (channels=%s, max_concurrent=%d)",
            ", ".join(channel.value for channel in self._senders),
            self._max_concurrent_deliveries,
        )

    async def stop(self) -> None:
        """Cancel every background task; deliveries left unsent stay in the database."""

        if self._state is not ServiceState.RUNNING:
            return
        self._state = ServiceState.STOPPED

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        self._queue = None
        self._in_flight = 0
        if self._idle is not None:
            self._idle.set()
        logger.info("Notification service stopped")

    async def wait_until_idle(self, timeout: float | None = None) -> None:
        """Wait until no delivery is queued, being sent or waiting on a retry timer."""

        if self._idle is None:
            return
        with anyio.fail_after(timeout):
            await self._idle.wait()

    # ------------------ Producers ------------------

    async def handle_event(self, event: ApplicationEvent) -> None:
        """Persist the notification for ``event`` and queue its deliveries."""

        request = build_notification_request(event)
        if request is None:
            logger.debug("Ignoring event %s: no notification mapped", type(event).__name__)
            return
        await self.notify(request)

    async def notify(self, request: CreateNotificationRequest) -> int:
        """Create a notification with its deliveries and queue every delivery.

        Returns the notification id. Storage errors propagate to the caller.
        """

        notification_id, delivery_ids = await self._store(
            lambda repository: self._create(repository, request)
        )
        logger.info(
            "Created notification %s for user %s (%s) with %d deliveries",
            notification_id,
            request.user_id,
            request.type.value,
            len(delivery_ids),
        )
        for delivery_id in delivery_ids:
            self.enqueue(delivery_id)
        return notification_id

    def enqueue(self, delivery_id: int) -> bool:
        """Queue ``delivery_id`` for processing; returns ``False`` if the service is not running."""

        if self._state is not ServiceState.RUNNING or self._queue is None:
            logger.debug("Service not running; delivery %s left for recovery", delivery_id)
            return False
        self._track(1)
        self._queue.put_nowait(delivery_id)
        return True

    # ------------------ Delivery processing ------------------

    async def process_delivery(self, delivery_id: int) -> None:
        """Attempt a single delivery.

        Claims the row first; if another worker already holds it (or it is no
        longer ``PENDING``) nothing happens. Failures are recorded in the store
        and, while retries remain, re-enqueued after the backoff delay.
        """

        claimed = await self._store(
            lambda repository: repository.mark_delivery_as_processing(delivery_id)
        )
        if not claimed:
            logger.debug("Delivery %s already claimed or not pending", delivery_id)
            return

        try:
            record = await self._store(
                lambda repository: repository.get_delivery_by_id(delivery_id)
            )
            if record is None:
                logger.error("Delivery %s disappeared after it was claimed", delivery_id)
                return
            notification = await self._store(
                lambda repository: repository.get_notification_by_id(record.notification_id)
            )
            if notification is None:
                logger.error(
                    "Notification %s for delivery %s not found",
                    record.notification_id,
                    delivery_id,
                )
                return

            sender = self._senders.get(record.channel)
            if sender is None:
                error = f"No sender configured for channel {record.channel.value}"
                logger.error("Delivery %s failed permanently: %s", delivery_id, error)
                # A missing sender will not appear on retry.
                await self._store(
                    lambda repository: repository.mark_delivery_as_failed(
                        delivery_id, error, max_retries=1
                    )
                )
                return

            result = await sender.send(NotificationDelivery(notification, record))
            if isinstance(result, DeliveryFailure):
                await self._record_failure(delivery_id, result.error)
                return

            await self._store(lambda repository: repository.mark_delivery_as_sent(delivery_id))
            logger.info(
                "Delivered notification %s via %s (delivery %s)",
                notification.id,
                record.channel.value,
                delivery_id,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Error processing delivery %s", delivery_id)
            await self._record_failure(delivery_id, str(exc) or type(exc).__name__)

    async def _record_failure(self, delivery_id: int, error: str) -> None:
        try:
            retry_scheduled = await self._store(
                lambda repository: repository.mark_delivery_as_failed(
                    delivery_id, error, max_retries=self._max_retries
                )
            )
            if not retry_scheduled:
                logger.error("Delivery %s failed permanently: %s", delivery_id, error)
                return
            record = await self._store(
                lambda repository: repository.get_delivery_by_id(delivery_id)
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Could not record failure of delivery %s", delivery_id)
            return

        attempts = record.attempts_in_budget if record is not None else 1
        delay = self._backoff(attempts)
        logger.warning(
            "Delivery %s failed (attempt %d/%d): %s. Retrying in %ss",
            delivery_id,
            attempts,
            self._max_retries,
            error,
            delay,
        )
        self._schedule_retry(delivery_id, delay)

    def _schedule_retry(self, delivery_id: int, delay: float) -> None:
        if self._state is not ServiceState.RUNNING:
            return
        self._track(1)
        self._spawn(self._retry_later(delivery_id, delay), name=f"notification-retry-{delivery_id}")

    async def _retry_later(self, delivery_id: int, delay: float) -> None:
        try:
            await anyio.sleep(delay)
            self.enqueue(delivery_id)
        finally:
            self._track(-1)

    # ------------------ Background tasks ------------------

    async def _consume_queue(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            delivery_id = await queue.get()
            try:
                self._spawn(
                    self._process_with_limit(delivery_id),
                    name=f"notification-delivery-{delivery_id}",
                )
            finally:
                queue.task_done()

    async def _process_with_limit(self, delivery_id: int) -> None:
        assert self._semaphore is not None
        try:
            async with self._semaphore:
                await self.process_delivery(delivery_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Delivery %s could not be processed", delivery_id)
        finally:
            self._track(-1)

    async def _recover_pending(self) -> None:
        try:
            deliveries = await self._store(
                lambda repository: repository.get_pending_deliveries(self._recovery_batch_size)
            )
            if deliveries:
                logger.info("Requeuing %d pending deliveries from the database", len(deliveries))
            for delivery in deliveries:
                self.enqueue(delivery.id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Failed to requeue pending deliveries")
        finally:
            self._track(-1)

    async def _sweep_periodically(self) -> None:
        assert self._sweep_interval is not None
        while True:
            await anyio.sleep(self._sweep_interval)
            await self.run_maintenance()

    async def run_maintenance(self) -> int:
        """Release stale ``PROCESSING`` rows and queue every due ``PENDING`` delivery.

        Returns how many deliveries were queued.
        """

        try:
            stale_ids = await self._store(
                lambda repository: repository.requeue_stale_deliveries(
                    self._stale_processing_after, max_retries=self._max_retries
                )
            )
            due = await self._store(
                lambda repository: repository.get_pending_deliveries(self._recovery_batch_size)
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Notification maintenance sweep failed")
            return 0

        if stale_ids:
            logger.warning("Released %d deliveries stuck in processing", len(stale_ids))
        queued = 0
        for delivery_id in dict.fromkeys([*stale_ids, *(delivery.id for delivery in due)]):
            if self.enqueue(delivery_id):
                queued += 1
        return queued

    # ------------------ Helpers ------------------

    def _spawn(self, coroutine: Coroutine[Any, Any, Any], *, name: str | None = None) -> None:
        task = asyncio.get_running_loop().create_task(coroutine, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _track(self, delta: int) -> None:
        self._in_flight = max(self._in_flight + delta, 0)
        if self._idle is None:
            return
        if self._in_flight == 0:
            self._idle.set()
        else:
            self._idle.clear()

    async def _store(self, operation: Callable[[NotificationRepository], T]) -> T:
        return await to_thread.run_sync(self._run_in_session, operation)

    def _run_in_session(self, operation: Callable[[NotificationRepository], T]) -> T:
        with self._session_factory() as session:
            return operation(NotificationRepository(session))

    @staticmethod
    def _create(
        repository: NotificationRepository, request: CreateNotificationRequest
    ) -> tuple[int, list[int]]:
        notification_id = repository.create_notification(request)
        deliveries = repository.get_deliveries_for_notification(notification_id)
        return notification_id, [delivery.id for delivery in deliveries]


__all__ = ["NotificationService", "ServiceState"]
