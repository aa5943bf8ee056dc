"""
RoomReminder model for per-user, per-room alert timings.

A user may ask to be notified several times before the same room opens
(e.g. 5, 15 and 60 minutes before); each offset is its own row.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from daylock.src.models import Base


class RoomReminder(Base):
    """
    A user's request to be pushed a notification before a room opens.

    Attributes:
        user_id: Owning user (identifier issued by the auth provider)
        room_id: Room whose opening triggers the reminder
        minutes_before: Offset before opening time (non-negative)
        enabled: Disabled rows are ignored by the scheduler
        timezone: IANA zone the room's opening time is interpreted in.
                  Null means UTC; unknown zones fall back to server-local time.

    Constraints:
        At most one row per (user_id, room_id, minutes_before).
    """

    __tablename__ = "room_reminders"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "room_id", "minutes_before",
            name="uq_room_reminders_user_room_offset",
        ),
        CheckConstraint("minutes_before >= 0", name="ck_room_reminders_minutes_before"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)

    minutes_before = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=True)
    timezone = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    room = relationship("Room", back_populates="reminders")
