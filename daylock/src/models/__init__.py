"""
SQLAlchemy models for the Daylock reminder engine.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

# All models inherit from this Base class
Base = declarative_base()


from daylock.src.models.room import Room
from daylock.src.models.room_reminder import RoomReminder
from daylock.src.models.push_subscription import PushSubscription
from daylock.src.models.notification import Notification
from daylock.src.models.notification_preference import NotificationPreference

__all__ = [
    "Base",
    "Room",
    "RoomReminder",
    "PushSubscription",
    "Notification",
    "NotificationPreference",
]
