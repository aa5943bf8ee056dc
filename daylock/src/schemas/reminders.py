"""
Pydantic schemas for reminder scheduling and push delivery.

Provides validated, store-independent views of:
- Reminder configurations and the room schedule they point at
- Push endpoints (one per subscribed browser/device)
- In-app notification records written after a delivered push
- The Web Push payload sent for a room-opening reminder
"""

from datetime import time
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Column widths of the notifications table
NOTIFICATION_TITLE_MAX = 200
NOTIFICATION_BODY_MAX = 500


# ============================================================================
# Reminder Schemas
# ============================================================================


class ReminderConfig(BaseModel):
    """
    A user's request to be notified before a room opens.

    Attributes:
        user_id: Owning user identifier
        room_id: Room identifier
        minutes_before: Offset before the room's opening time
        enabled: Disabled configs are never matched
        timezone: IANA zone identifier; None means UTC
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: str
    room_id: Union[int, str]
    minutes_before: int = Field(..., ge=0)
    enabled: bool = True
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def blank_timezone_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings as an absent zone."""
        if v is not None and not v.strip():
            return None
        return v


class RoomSchedule(BaseModel):
    """
    The room fields the reminder engine needs.

    time_start may hold a ``datetime.time`` (as loaded from a TIME column)
    or a raw ``HH:MM[:SS]`` string; unparsable values are skipped by the
    matcher rather than rejected here.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: Union[int, str]
    name: str
    emoji: Optional[str] = None
    time_start: Optional[Union[time, str]] = None
    time_end: Optional[Union[time, str]] = None


# ============================================================================
# Delivery Schemas
# ============================================================================


class PushEndpoint(BaseModel):
    """One registered Web Push delivery target for a user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    endpoint: str
    p256dh_key: str
    auth_key: str
    active: bool = True

    @property
    def subscription_info(self) -> Dict[str, Any]:
        """Subscription dict in the shape pywebpush expects."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh_key, "auth": self.auth_key},
        }

    @property
    def endpoint_prefix(self) -> str:
        """Truncated endpoint for log output."""
        return self.endpoint[:60]


class NotificationRecord(BaseModel):
    """In-app notification mirroring a delivered push."""

    user_id: str
    type: str = "room_opening"
    title: str = Field(..., max_length=NOTIFICATION_TITLE_MAX)
    body: str = Field(..., max_length=NOTIFICATION_BODY_MAX)
    data: Dict[str, Any] = Field(default_factory=dict)
    push_sent: bool = True


class ReminderPayloadData(BaseModel):
    """Navigation data carried inside a reminder push."""

    model_config = ConfigDict(populate_by_name=True)

    room_id: Union[int, str] = Field(..., alias="roomId")
    minutes_before: int = Field(..., alias="minutesBefore")
    url: str


class ReminderPayload(BaseModel):
    """
    Web Push payload for a room-opening reminder.

    Serialized with camelCase aliases, which is what the service worker reads.
    dedup_tag is stable per (room, minutes_before) so the browser replaces
    an older copy of the same reminder instead of stacking it.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str = "room_opening"
    title: str
    body: str
    data: ReminderPayloadData
    dedup_tag: str = Field(..., alias="dedupTag")
    icon: str = "/Assets/daylock_logo.png"
    badge: str = "/favicon.svg"

    def to_push_dict(self) -> Dict[str, Any]:
        """Payload dict as sent over the wire."""
        return self.model_dump(by_alias=True)
