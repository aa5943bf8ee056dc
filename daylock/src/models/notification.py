"""
Notification model for in-app notification history.

The reminder engine writes one row per reminder that reached at least one
device, so the notification bell in the UI mirrors what was pushed.
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String

from daylock.src.models import Base
from daylock.src.models.types import JSONBType


class Notification(Base):
    """
    Notification event sent to a user.

    Attributes:
        type: Notification type (room_opening, ...)
        title: Short notification title (max 200 chars)
        body: Notification body text (max 500 chars)
        data: JSON with the room id and reminder offset
        push_sent: Whether the push reached at least one device
        read_at: Timestamp when user viewed the notification (null = unread)
    """

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)

    type = Column(String(30), nullable=False)
    title = Column(String(200), nullable=False)
    body = Column(String(500), nullable=False)
    data = Column(JSONBType, nullable=True)
    push_sent = Column(Boolean, nullable=False, default=False)

    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index(
            "ix_notifications_user_unread",
            "user_id",
            postgresql_where=(read_at.is_(None)),
        ),
    )
