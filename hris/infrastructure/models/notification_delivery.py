"""SQLAlchemy model for per-channel notification deliveries."""

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from hris.domain.entities import DeliveryStatus, NotificationChannel
from hris.infrastructure.database import Base


class NotificationDeliveryModel(Base):
    """Database representation of delivery attempts for one channel."""

    __tablename__ = "notification_delivery"
    __table_args__ = (
        Index("notification_delivery_status_retry_idx", "status", "next_retry_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(
        Integer,
        ForeignKey("notification.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    channel = Column(
        Enum(NotificationChannel, native_enum=False, length=32, validate_strings=True),
        nullable=False,
    )
    status = Column(
        Enum(DeliveryStatus, native_enum=False, length=32, validate_strings=True),
        nullable=False,
        default=DeliveryStatus.PENDING,
    )
    attempt_count = Column(Integer, nullable=False, default=0)
    # attempt_count at the last manual re-arm; the retry budget counts from here.
    attempt_offset = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime(), nullable=True)
    sent_at = Column(DateTime(), nullable=True)
    error_message = Column(Text, nullable=True)
    next_retry_at = Column(DateTime(), nullable=True)

    notification = relationship("NotificationModel", back_populates="deliveries")


__all__ = ["NotificationDeliveryModel"]
