"""Persistence helpers for notifications and their channel deliveries.

The repository is the only component allowed to change delivery status. Each
public mutating method runs in its own transaction and commits before
returning, so callers holding short-lived sessions (one per pipeline step) see
a consistent state machine:

``PENDING -> PROCESSING -> SENT | PENDING (retry) | FAILED``
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import timedelta

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from hris.domain.entities import (
    DEFAULT_MAX_RETRIES,
    CreateNotificationRequest,
    DeliveryStatus,
    Notification,
    NotificationDeliveryRecord,
    retry_backoff_seconds,
)
from hris.infrastructure.models import NotificationDeliveryModel, NotificationModel
from hris.utils import ensure_app_timezone, storage_now

logger = logging.getLogger(__name__)

STALE_PROCESSING_ERROR = "Delivery attempt abandoned while processing"


class NotificationRepository:
    """Provide storage operations for :class:`Notification` and its deliveries."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        try:
            yield self.session
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _fresh(self, query):
        # Bulk updates bypass the identity map; always reload row state.
        return self.session.scalars(query.execution_options(populate_existing=True))

    # ------------------ Notifications ------------------

    def create_notification(self, request: CreateNotificationRequest) -> int:
        """Insert a notification and one ``PENDING`` delivery per requested channel.

        Both the notification row and its deliveries are written in the same
        transaction; the deliveries are immediately due for pickup.
        """

        channels = request.unique_channels()
        with self._transaction():
            now = storage_now()
            model = NotificationModel(
                user_id=request.user_id,
                type=request.type,
                title=request.title,
                message=request.message,
                related_entity_type=request.related_entity_type,
                related_entity_id=request.related_entity_id,
                created_at=now,
                read_at=None,
            )
            model.deliveries = [
                NotificationDeliveryModel(
                    channel=channel,
                    status=DeliveryStatus.PENDING,
                    attempt_count=0,
                    attempt_offset=0,
                    last_attempt_at=None,
                    sent_at=None,
                    error_message=None,
                    next_retry_at=now,
                )
                for channel in channels
            ]
            self.session.add(model)
            self.session.flush()
            notification_id = model.id
        return notification_id

    def get_notification_by_id(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id, populate_existing=True)
        if model is None:
            return None
        return self._to_entity(model)

    def get_user_notifications(
        self,
        user_id: int,
        *,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Notification]:
        """Return notifications for ``user_id``, most recent first."""

        query = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            query = query.where(NotificationModel.read_at.is_(None))
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if offset:
            query = query.offset(offset)
        query = query.limit(limit)
        return [self._to_entity(model) for model in self._fresh(query)]

    def count_unread_notifications(self, user_id: int) -> int:
        query = select(func.count(NotificationModel.id)).where(
            NotificationModel.user_id == user_id,
            NotificationModel.read_at.is_(None),
        )
        return int(self.session.scalar(query) or 0)

    def mark_as_read(self, notification_id: int, user_id: int) -> bool:
        """Stamp ``read_at`` if the notification belongs to ``user_id`` and is unread."""

        statement = (
            update(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
                NotificationModel.read_at.is_(None),
            )
            .values(read_at=storage_now())
            .execution_options(synchronize_session=False)
        )
        with self._transaction():
            result = self.session.execute(statement)
        return result.rowcount > 0

    def mark_all_as_read(self, user_id: int) -> int:
        statement = (
            update(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.read_at.is_(None),
            )
            .values(read_at=storage_now())
            .execution_options(synchronize_session=False)
        )
        with self._transaction():
            result = self.session.execute(statement)
        return result.rowcount

    def delete_notification(self, notification_id: int, user_id: int) -> bool:
        """Delete the notification and its deliveries when owned by ``user_id``."""

        with self._transaction():
            model = self.session.scalar(
                select(NotificationModel).where(
                    NotificationModel.id == notification_id,
                    NotificationModel.user_id == user_id,
                )
                .execution_options(populate_existing=True)
            )
            if model is None:
                return False
            self.session.delete(model)
        return True

    # ------------------ Deliveries ------------------

    def get_pending_deliveries(self, limit: int) -> Sequence[NotificationDeliveryRecord]:
        """Return up to ``limit`` ``PENDING`` deliveries whose retry time has come."""

        query = (
            select(NotificationDeliveryModel)
            .where(
                NotificationDeliveryModel.status == DeliveryStatus.PENDING,
                NotificationDeliveryModel.next_retry_at <= storage_now(),
            )
            .order_by(
                NotificationDeliveryModel.next_retry_at.asc(),
                NotificationDeliveryModel.id.asc(),
            )
            .limit(limit)
        )
        return [self._to_delivery_record(model) for model in self._fresh(query)]

    def mark_delivery_as_processing(self, delivery_id: int) -> bool:
        """Claim a delivery for sending.

        Compare-and-set on ``status = PENDING`` in a single statement: of any
        number of concurrent callers, in this process or another, at most one
        sees ``True``.
        """

        statement = (
            update(NotificationDeliveryModel)
            .where(
                NotificationDeliveryModel.id == delivery_id,
                NotificationDeliveryModel.status == DeliveryStatus.PENDING,
            )
            .values(
                status=DeliveryStatus.PROCESSING,
                last_attempt_at=storage_now(),
                next_retry_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        with self._transaction():
            result = self.session.execute(statement)
        return result.rowcount > 0

    def mark_delivery_as_sent(self, delivery_id: int) -> bool:
        now = storage_now()
        statement = (
            update(NotificationDeliveryModel)
            .where(NotificationDeliveryModel.id == delivery_id)
            .values(status=DeliveryStatus.SENT, sent_at=now, next_retry_at=None)
            .execution_options(synchronize_session=False)
        )
        with self._transaction():
            result = self.session.execute(statement)
        return result.rowcount > 0

    def mark_delivery_as_failed(
        self,
        delivery_id: int,
        error_message: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> bool:
        """Record a failed attempt.

        Returns ``True`` when a retry was scheduled (status back to ``PENDING``
        with ``next_retry_at`` pushed by the exponential backoff) and ``False``
        when the delivery is now permanently ``FAILED`` or does not exist.
        """

        with self._transaction():
            model = self.session.scalar(
                select(NotificationDeliveryModel)
                .where(NotificationDeliveryModel.id == delivery_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            if model is None:
                return False

            attempts = model.attempt_count + 1
            model.attempt_count = attempts
            model.error_message = error_message
            in_budget = attempts - (model.attempt_offset or 0)
            if in_budget >= max_retries:
                model.status = DeliveryStatus.FAILED
                model.next_retry_at = None
                retry_scheduled = False
            else:
                model.status = DeliveryStatus.PENDING
                model.next_retry_at = storage_now() + timedelta(
                    seconds=retry_backoff_seconds(in_budget)
                )
                retry_scheduled = True
        return retry_scheduled

    def get_deliveries_for_notification(
        self, notification_id: int
    ) -> Sequence[NotificationDeliveryRecord]:
        query = (
            select(NotificationDeliveryModel)
            .where(NotificationDeliveryModel.notification_id == notification_id)
            .order_by(NotificationDeliveryModel.id.asc())
        )
        return [self._to_delivery_record(model) for model in self._fresh(query)]

    def get_delivery_by_id(self, delivery_id: int) -> NotificationDeliveryRecord | None:
        model = self.session.get(
            NotificationDeliveryModel, delivery_id, populate_existing=True
        )
        if model is None:
            return None
        return self._to_delivery_record(model)

    def requeue_stale_deliveries(
        self,
        older_than: timedelta,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> list[int]:
        """Release deliveries stuck in ``PROCESSING`` for longer than ``older_than``.

        An abandoned attempt counts as a failure: the row goes back to
        ``PENDING`` (due immediately) or to ``FAILED`` once ``max_retries`` is
        reached. Returns the ids that are pending again.
        """

        cutoff = storage_now() - older_than
        stale = (
            NotificationDeliveryModel.status == DeliveryStatus.PROCESSING,
            NotificationDeliveryModel.last_attempt_at < cutoff,
        )
        with self._transaction():
            candidates = list(
                self.session.scalars(
                    select(NotificationDeliveryModel.id).where(*stale).with_for_update()
                )
            )
            if not candidates:
                return []

            in_candidates = NotificationDeliveryModel.id.in_(candidates)
            exhausted = (
                NotificationDeliveryModel.attempt_count
                + 1
                - NotificationDeliveryModel.attempt_offset
                >= max_retries
            )
            self.session.execute(
                update(NotificationDeliveryModel)
                .where(in_candidates, *stale, exhausted)
                .values(
                    status=DeliveryStatus.FAILED,
                    attempt_count=NotificationDeliveryModel.attempt_count + 1,
                    error_message=STALE_PROCESSING_ERROR,
                    next_retry_at=None,
                )
                .execution_options(synchronize_session=False)
            )
            self.session.execute(
                update(NotificationDeliveryModel)
                .where(in_candidates, *stale, ~exhausted)
                .values(
                    status=DeliveryStatus.PENDING,
                    attempt_count=NotificationDeliveryModel.attempt_count + 1,
                    error_message=STALE_PROCESSING_ERROR,
                    next_retry_at=storage_now(),
                )
                .execution_options(synchronize_session=False)
            )
            requeued = list(
                self.session.scalars(
                    select(NotificationDeliveryModel.id)
                    .where(
                        in_candidates,
                        NotificationDeliveryModel.status == DeliveryStatus.PENDING,
                    )
                    .order_by(NotificationDeliveryModel.id.asc())
                )
            )
        if len(requeued) < len(candidates):
            logger.error(
                "%d stale deliveries exhausted their attempts and were marked FAILED",
                len(candidates) - len(requeued),
            )
        return requeued

    def list_failed_deliveries(self, limit: int = 100) -> Sequence[NotificationDeliveryRecord]:
        query = (
            select(NotificationDeliveryModel)
            .where(NotificationDeliveryModel.status == DeliveryStatus.FAILED)
            .order_by(NotificationDeliveryModel.id.asc())
            .limit(limit)
        )
        return [self._to_delivery_record(model) for model in self._fresh(query)]

    def reset_failed_delivery(self, delivery_id: int) -> bool:
        """Put a permanently failed delivery back in the queue with a fresh retry budget.

        ``attempt_count`` keeps its value; ``attempt_offset`` moves up to it so
        the next failures are counted against ``max_retries`` from zero.
        """

        statement = (
            update(NotificationDeliveryModel)
            .where(
                NotificationDeliveryModel.id == delivery_id,
                NotificationDeliveryModel.status == DeliveryStatus.FAILED,
            )
            .values(
                status=DeliveryStatus.PENDING,
                attempt_offset=NotificationDeliveryModel.attempt_count,
                next_retry_at=storage_now(),
            )
            .execution_options(synchronize_session=False)
        )
        with self._transaction():
            result = self.session.execute(statement)
        return result.rowcount > 0

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=model.type,
            title=model.title,
            message=model.message,
            related_entity_type=model.related_entity_type,
            related_entity_id=model.related_entity_id,
            created_at=ensure_app_timezone(model.created_at),
            read_at=ensure_app_timezone(model.read_at),
        )

    @staticmethod
    def _to_delivery_record(model: NotificationDeliveryModel) -> NotificationDeliveryRecord:
        return NotificationDeliveryRecord(
            id=model.id,
            notification_id=model.notification_id,
            channel=model.channel,
            status=model.status,
            attempt_count=model.attempt_count,
            attempt_offset=model.attempt_offset or 0,
            last_attempt_at=ensure_app_timezone(model.last_attempt_at),
            sent_at=ensure_app_timezone(model.sent_at),
            error_message=model.error_message,
            next_retry_at=ensure_app_timezone(model.next_retry_at),
        )


__all__ = ["NotificationRepository", "STALE_PROCESSING_ERROR"]
