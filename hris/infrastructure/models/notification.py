"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from hris.domain.entities import NotificationType
from hris.infrastructure.database import Base
from hris.utils import storage_now


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (Index("notification_user_created_idx", "user_id", "created_at"),)

    id = Column(Integer, primary_key=True, index=True)
    # Employees live in the organisation service; only the identifier is kept here.
    user_id = Column(Integer, nullable=False)
    type = Column(
        Enum(NotificationType, native_enum=False, length=64, validate_strings=True),
        nullable=False,
    )
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    related_entity_type = Column(String(64), nullable=True)
    related_entity_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(), nullable=False, default=storage_now)
    read_at = Column(DateTime(), nullable=True)

    deliveries = relationship(
        "NotificationDeliveryModel",
        back_populates="notification",
        cascade="all, delete-orphan",
    )


__all__ = ["NotificationModel"]
