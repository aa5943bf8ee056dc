"""
In-memory ledger of reminder firings already delivered today.

The scheduler consults the ledger before dispatching a due reminder and
records the firing after the attempt, whatever its outcome, so that a
failing reminder is attempted at most once per day instead of every tick
of its window.

The ledger is process-local and is not persisted: a restart inside a
firing's window may deliver that reminder twice. Deployments running more
than one scheduler replica need a shared ledger or leader election.
"""

import threading
from datetime import date, datetime
from typing import Callable, NamedTuple, Optional, Set, Union

from daylock.src.utils.logging_config import get_logger


logger = get_logger("scheduler")


class FiringKey(NamedTuple):
    """
    Identity of a single day's notification instance.

    Two firings with the same key are the same logical event.
    """

    user_id: str
    room_id: Union[int, str]
    minutes_before: int
    day: date


def server_today() -> date:
    """Calendar date on the server's wall clock."""
    return datetime.now().astimezone().date()


class DedupLedger:
    """
    Thread-safe set of fired (and in-flight) firing keys.

    Keys move through two sets:
    - in flight: claimed by ``try_begin`` while a delivery is being attempted
    - fired: recorded by ``mark_fired`` once the attempt is over

    ``reset_daily`` clears only the fired set, so a reset racing with an
    in-flight tick never lets a second tick claim a firing that is still
    being delivered.

    Thread Safety:
        All operations are protected by a threading.Lock.

    Usage:
        ledger = DedupLedger()
        key = FiringKey("user-1", 42, 15, date(2026, 3, 2))
        if ledger.try_begin(key):
            try:
                deliver()
            finally:
                ledger.mark_fired(key)
    """

    def __init__(self, today: Callable[[], date] = server_today):
        """
        Initialize an empty ledger.

        Args:
            today: Clock returning the ledger's current calendar day. Tests
                   inject a fixed or stepping clock instead of relying on
                   wall-clock midnight.
        """
        self._today = today
        self._day: date = today()
        self._fired: Set[FiringKey] = set()
        self._in_flight: Set[FiringKey] = set()
        self._lock = threading.Lock()

    def already_fired(self, key: FiringKey) -> bool:
        """Check whether the firing has already been attempted today."""
        with self._lock:
            return key in self._fired

    def try_begin(self, key: FiringKey) -> bool:
        """
        Atomically claim a firing for delivery.

        Returns:
            False if the key already fired or is being delivered by an
            overlapping tick; True if the caller now owns the attempt.
        """
        with self._lock:
            if key in self._fired or key in self._in_flight:
                return False
            self._in_flight.add(key)
            return True

    def mark_fired(self, key: FiringKey) -> None:
        """Record a firing as attempted, releasing any in-flight claim."""
        with self._lock:
            self._in_flight.discard(key)
            self._fired.add(key)

    def reset_daily(self, day: Optional[date] = None) -> int:
        """
        Start a new day with an empty fired set.

        Args:
            day: The new day (defaults to the ledger clock)

        Returns:
            Number of keys dropped
        """
        with self._lock:
            dropped = len(self._fired)
            self._fired = set()
            self._day = day or self._today()
            new_day = self._day

        logger.info(
            "Cleared daily reminder dedup ledger",
            extra={"dropped": dropped, "day": new_day.isoformat()},
        )
        return dropped

    def roll_over(self) -> bool:
        """
        Reset if the ledger clock has moved past the ledger's day.

        Called at the start of each tick so a late or missed midnight timer
        never carries yesterday's keys into today.

        Returns:
            True if a reset happened
        """
        today = self._today()
        with self._lock:
            if today == self._day:
                return False
        self.reset_daily(today)
        return True

    @property
    def day(self) -> date:
        """Calendar day the fired set belongs to."""
        return self._day

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def __len__(self) -> int:
        with self._lock:
            return len(self._fired)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._fired
