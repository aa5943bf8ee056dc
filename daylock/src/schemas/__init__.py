"""
Pydantic schemas shared by the reminder engine services.
"""

from daylock.src.schemas.reminders import (
    ReminderConfig,
    RoomSchedule,
    PushEndpoint,
    NotificationRecord,
    ReminderPayload,
    ReminderPayloadData,
)

__all__ = [
    "ReminderConfig",
    "RoomSchedule",
    "PushEndpoint",
    "NotificationRecord",
    "ReminderPayload",
    "ReminderPayloadData",
]
