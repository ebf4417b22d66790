"""Endpoints and websocket handler for user notifications."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.orm import Session

from hris.infrastructure.notifications import notification_manager, serialize_notification
from hris.infrastructure.repositories import NotificationRepository
from hris.interfaces.api.dependencies import get_db, get_session_factory
from hris.interfaces.api.routes_helpers import DEFAULT_PAGE_SIZE, clamp_page, parse_user_id
from hris.interfaces.api.schemas import (
    MarkAllReadResponse,
    NotificationDeliveryRead,
    NotificationRead,
    SuccessResponse,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

NOT_FOUND_OR_READ = "Notification not found or already read"
NOT_FOUND = "Notification not found"

UserId = Annotated[
    int, Query(alias="userId", gt=0, description="Recipient of the notifications")
]


@router.get("", response_model=list[NotificationRead])
def list_notifications(
    user_id: UserId,
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    offset: int = Query(0),
    db: Session = Depends(get_db),
) -> list[NotificationRead]:
    """Return the user's notifications, most recent first."""

    page = clamp_page(limit, offset)
    notifications = NotificationRepository(db).get_user_notifications(
        user_id, unread_only=unread_only, limit=page.limit, offset=page.offset
    )
    return [NotificationRead.model_validate(notification) for notification in notifications]


@router.get("/unread/count", response_model=UnreadCountResponse)
def unread_count(
    user_id: UserId, db: Session = Depends(get_db)
) -> UnreadCountResponse:
    return UnreadCountResponse(
        count=NotificationRepository(db).count_unread_notifications(user_id)
    )


@router.patch("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    user_id: UserId, db: Session = Depends(get_db)
) -> MarkAllReadResponse:
    count = NotificationRepository(db).mark_all_as_read(user_id)
    return MarkAllReadResponse(success=True, count=count)


@router.patch("/{notification_id}/read", response_model=SuccessResponse)
def mark_read(
    notification_id: int,
    user_id: UserId,
    db: Session = Depends(get_db),
) -> SuccessResponse:
    if not NotificationRepository(db).mark_as_read(notification_id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_OR_READ)
    return SuccessResponse()


@router.delete("/{notification_id}", response_model=SuccessResponse)
def delete_notification(
    notification_id: int,
    user_id: UserId,
    db: Session = Depends(get_db),
) -> SuccessResponse:
    if not NotificationRepository(db).delete_notification(notification_id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return SuccessResponse()


@router.get("/{notification_id}/deliveries", response_model=list[NotificationDeliveryRead])
def list_deliveries(
    notification_id: int,
    user_id: UserId,
    db: Session = Depends(get_db),
) -> list[NotificationDeliveryRead]:
    """Return the per-channel delivery state of one of the user's notifications."""

    repository = NotificationRepository(db)
    notification = repository.get_notification_by_id(notification_id)
    if notification is None or notification.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    deliveries = repository.get_deliveries_for_notification(notification_id)
    return [NotificationDeliveryRead.model_validate(delivery) for delivery in deliveries]


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams browser notifications to a user."""

    user_id = parse_user_id(websocket.query_params.get("userId"))
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    session_factory = get_session_factory(websocket)
    with session_factory() as session:
        pending_notifications = NotificationRepository(session).get_user_notifications(
            user_id, unread_only=True
        )

    await notification_manager.connect(user_id, websocket)
    try:
        if pending_notifications:
            await websocket.send_json(
                {
                    "type": "init",
                    "data": [serialize_notification(n) for n in pending_notifications],
                }
            )
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    with session_factory() as ack_session:
                        repository = NotificationRepository(ack_session)
                        for notification_id in ids:
                            if isinstance(notification_id, int):
                                repository.mark_as_read(notification_id, user_id)
                continue
    except WebSocketDisconnect:
        notification_manager.disconnect(user_id, websocket)
    except Exception:
        notification_manager.disconnect(user_id, websocket)
        logger.exception("Notification websocket for user %s failed", user_id)
        raise
