"""Use cases for inspecting and re-arming permanently failed deliveries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from hris.domain.entities import NotificationDeliveryRecord
from hris.infrastructure.repositories import NotificationRepository


def list_failed_deliveries(
    session: Session, *, limit: int = 100
) -> Sequence[NotificationDeliveryRecord]:
    return NotificationRepository(session).list_failed_deliveries(limit)


def retry_failed_deliveries(
    session: Session,
    delivery_ids: Iterable[int] | None = None,
    *,
    limit: int = 100,
) -> list[int]:
    """Reset failed deliveries to ``PENDING`` and return the ids that were reset.

    With no ``delivery_ids`` every listed failed delivery (up to ``limit``) is
    reset. Ids that are not ``FAILED`` are skipped.
    """

    repository = NotificationRepository(session)
    if delivery_ids is None:
        delivery_ids = [record.id for record in repository.list_failed_deliveries(limit)]
    return [
        delivery_id
        for delivery_id in dict.fromkeys(delivery_ids)
        if repository.reset_failed_delivery(delivery_id)
    ]


__all__ = ["list_failed_deliveries", "retry_failed_deliveries"]
