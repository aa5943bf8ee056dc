"""
Reminder matching: which reminders are due in the current tick.

A reminder with offset ``m`` for a room opening at wall-clock time ``T`` is
due when ``now`` lies in the half-open window ``[T - m, T - m + window)``.
With one tick per window and no skipped ticks, exactly one tick lands in
each window, so each reminder matches exactly once per occurrence.

Today's and upcoming openings (in the reminder's zone) are all checked,
so a reminder whose target falls before midnight for a room opening just
after midnight still fires.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

from daylock.src.schemas.reminders import ReminderConfig, RoomSchedule
from daylock.src.services import time_resolver
from daylock.src.services.exceptions import InvalidTimeOfDayError


DEFAULT_WINDOW = timedelta(seconds=60)


@dataclass(frozen=True)
class DueFiring:
    """
    One reminder that became due in the current tick.

    Attributes:
        reminder: The reminder configuration that matched
        room: Room the reminder points at
        opens_at: Absolute instant the room opens (UTC)
        target_at: Absolute instant the reminder was scheduled for (UTC)
    """

    reminder: ReminderConfig
    room: RoomSchedule
    opens_at: datetime
    target_at: datetime

    @property
    def user_id(self) -> str:
        return self.reminder.user_id

    @property
    def minutes_before(self) -> int:
        return self.reminder.minutes_before


def target_instant(
    opening: time,
    reminder: ReminderConfig,
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> Optional[Tuple[datetime, datetime]]:
    """
    Find the opening whose reminder window contains ``now``.

    Args:
        opening: Room opening time-of-day
        reminder: Reminder configuration (offset and zone)
        now: Current instant (aware)
        window: Width of the firing window

    Returns:
        (opens_at, target_at) in UTC if ``now`` is inside a window, else None
    """
    zone_name = reminder.timezone
    today = time_resolver.zone_date(now, zone_name)
    offset = timedelta(minutes=reminder.minutes_before)

    # Offsets longer than a day point at an opening several days ahead
    for days_ahead in range(reminder.minutes_before // (24 * 60) + 2):
        opens_at = time_resolver.resolve_on(
            opening, zone_name, today + timedelta(days=days_ahead)
        )
        target_at = opens_at - offset
        if timedelta(0) <= now - target_at < window:
            return opens_at, target_at
    return None


def find_due(
    rows: Iterable[Tuple[ReminderConfig, RoomSchedule]],
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> List[DueFiring]:
    """
    Filter reminders down to those due at ``now``.

    Disabled reminders, rooms without an opening time and rooms whose
    opening time cannot be parsed are skipped without error.

    Args:
        rows: (reminder, room) pairs from the durable store
        now: Tick instant; naive values are treated as UTC
        window: Width of the firing window (the tick period)

    Returns:
        Due firings, in no particular order
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    due: List[DueFiring] = []
    for reminder, room in rows:
        if not reminder.enabled or room is None or room.time_start is None:
            continue

        try:
            opening = time_resolver.parse_time_of_day(room.time_start)
        except InvalidTimeOfDayError:
            continue

        match = target_instant(opening, reminder, now, window)
        if match is None:
            continue

        opens_at, target_at = match
        due.append(
            DueFiring(
                reminder=reminder,
                room=room,
                opens_at=opens_at,
                target_at=target_at,
            )
        )

    return due
