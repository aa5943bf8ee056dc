"""
Room model: the minimal projection of a room the reminder engine needs.

Rooms are created and edited by the API server; the engine only reads
their display fields and daily opening time.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Time, DateTime
from sqlalchemy.orm import relationship

from daylock.src.models import Base


class Room(Base):
    """
    Scheduled daily activity users check into.

    Attributes:
        name: Display name
        emoji: Display glyph shown in notification titles
        time_start: Daily opening time-of-day (local, no date). Rooms without
                    one are never eligible for reminders.
        time_end: Daily closing time-of-day
    """

    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    emoji = Column(String(16), nullable=True)

    time_start = Column(Time, nullable=True)
    time_end = Column(Time, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    reminders = relationship(
        "RoomReminder", back_populates="room", cascade="all, delete-orphan"
    )
