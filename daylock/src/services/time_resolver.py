"""
Time-of-day resolution against IANA time zones.

Converts a room's daily opening time (a wall-clock value with no date)
into the absolute instant it occurs at on a given day in a user's zone.

The offset is always looked up for the specific calendar day through the
zone database, so daylight-saving transitions are honoured. A zone name
the database does not recognise falls back to the server's local zone and
logs a warning once per name.
"""

import re
from datetime import date, datetime, time, timezone
from functools import lru_cache
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from daylock.src.services.exceptions import InvalidTimeOfDayError
from daylock.src.utils.logging_config import get_logger


logger = get_logger("services")

DEFAULT_TIMEZONE = "UTC"

_TIME_OF_DAY_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?\s*$")


def parse_time_of_day(value: Union[time, str]) -> time:
    """
    Parse a stored time-of-day.

    Args:
        value: ``datetime.time`` or an ``HH:MM[:SS]`` string

    Returns:
        Naive ``datetime.time`` (microseconds dropped)

    Raises:
        InvalidTimeOfDayError: If the value is empty or out of range
    """
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)

    if not isinstance(value, str):
        raise InvalidTimeOfDayError(value)

    match = _TIME_OF_DAY_RE.match(value)
    if not match:
        raise InvalidTimeOfDayError(value)

    hour, minute, second = (int(part) if part else 0 for part in match.groups())
    try:
        return time(hour, minute, second)
    except ValueError as e:
        raise InvalidTimeOfDayError(value) from e


@lru_cache(maxsize=256)
def load_zone(name: Optional[str]) -> Optional[ZoneInfo]:
    """
    Look up an IANA zone.

    Args:
        name: Zone identifier; None or blank means UTC

    Returns:
        ZoneInfo, or None when the identifier is not recognised
    """
    if name is None or not name.strip():
        return ZoneInfo(DEFAULT_TIMEZONE)

    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            "Unknown time zone, using server-local time",
            extra={"timezone": name},
        )
        return None


def zone_date(reference: datetime, zone_name: Optional[str]) -> date:
    """Calendar date of ``reference`` as seen on a wall clock in the zone."""
    zone = load_zone(zone_name)
    if zone is None:
        return _as_aware(reference).astimezone().date()
    return _as_aware(reference).astimezone(zone).date()


def resolve_on(time_of_day: time, zone_name: Optional[str], day: date) -> datetime:
    """
    Absolute instant (UTC) at which ``time_of_day`` occurs on ``day`` in the zone.

    Wall-clock times skipped by a spring-forward transition resolve with the
    offset in force before the transition; repeated times resolve to their
    first occurrence.
    """
    wall = datetime.combine(day, time_of_day.replace(tzinfo=None))
    zone = load_zone(zone_name)
    if zone is None:
        # Naive astimezone() interprets the value in the server's zone
        return wall.astimezone().astimezone(timezone.utc)
    return wall.replace(tzinfo=zone).astimezone(timezone.utc)


def resolve(
    time_of_day: Union[time, str],
    zone_name: Optional[str],
    reference: datetime,
) -> datetime:
    """
    Resolve a time-of-day to an absolute instant for "today" in a zone.

    "Today" is the calendar date of ``reference`` in the target zone, not in
    the server's zone.

    Args:
        time_of_day: Wall-clock time (``datetime.time`` or ``HH:MM[:SS]``)
        zone_name: IANA zone identifier (None means UTC)
        reference: Instant that selects the calendar day; naive values are UTC

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        InvalidTimeOfDayError: If time_of_day cannot be parsed
    """
    parsed = parse_time_of_day(time_of_day)
    return resolve_on(parsed, zone_name, zone_date(reference, zone_name))


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
