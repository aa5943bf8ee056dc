"""
NotificationPreference model: per-user notification opt-outs.

Only the room_opening switch is consulted by the reminder engine. Users
without a row are treated as opted in.
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String

from daylock.src.models import Base


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    user_id = Column(String(64), primary_key=True)
    room_opening = Column(Boolean, nullable=False, default=True)

    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )
