"""
Reminder scheduler: the once-per-tick control loop.

Each tick:
1. Fetches enabled reminders joined with their room
2. Filters them to the ones due in this tick
3. For each due firing not yet in the dedup ledger, sends the push,
   records the firing whatever the outcome, and writes an in-app
   notification when at least one device received it

A second loop clears the dedup ledger at server-local midnight.

Failures never escape a firing or a tick: a store outage abandons the tick
(the next tick is the retry), and a failing firing is logged and marked
fired so it is not retried every tick for the rest of its window.
"""

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Set

from daylock.src.schemas.reminders import (
    NOTIFICATION_BODY_MAX,
    NOTIFICATION_TITLE_MAX,
    NotificationRecord,
)
from daylock.src.services import reminder_matcher
from daylock.src.services.dedup_ledger import DedupLedger, FiringKey
from daylock.src.services.push_dispatcher import (
    PushDispatcher,
    build_room_reminder_payload,
)
from daylock.src.services.reminder_matcher import DueFiring
from daylock.src.services.reminder_store import AsyncReminderStore
from daylock.src.utils.logging_config import get_logger


logger = get_logger("scheduler")

DEFAULT_TICK_SECONDS = 60
DEFAULT_MAX_CONCURRENT_FIRINGS = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TickResult:
    """
    Summary of one scheduler tick.

    Attributes:
        at: Tick instant (UTC)
        due: Firings whose window contains the tick
        skipped: Due firings already fired (or in flight) today
        sent: Firings delivered to at least one device
        undelivered: Firings attempted that reached no device
        errors: Firings whose processing raised
        aborted: True if the tick could not read reminders
    """

    at: datetime
    due: int = 0
    skipped: int = 0
    sent: int = 0
    undelivered: int = 0
    errors: int = 0
    aborted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["at"] = self.at.isoformat()
        return data


class ReminderScheduler:
    """
    Orchestrates reminder ticks and the daily ledger reset.

    States: idle between ticks, ticking while a tick runs, and an
    independent ledger reset at each server-local midnight. There is no
    stopped state in normal operation; request_shutdown() stops new ticks
    and lets an in-flight tick finish.

    Attributes:
        tick_seconds: Tick period; also the width of the matching window
        ledger: Dedup ledger owned by this scheduler
    """

    def __init__(
        self,
        store: AsyncReminderStore,
        dispatcher: PushDispatcher,
        ledger: Optional[DedupLedger] = None,
        tick_seconds: int = DEFAULT_TICK_SECONDS,
        max_concurrent_firings: int = DEFAULT_MAX_CONCURRENT_FIRINGS,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the scheduler.

        Args:
            store: Async durable store
            dispatcher: Push dispatcher used for each due firing
            ledger: Dedup ledger (a fresh one if omitted)
            tick_seconds: Seconds between ticks
            max_concurrent_firings: Due firings dispatched concurrently per tick
            clock: Returns the current instant (aware)
        """
        self._store = store
        self._dispatcher = dispatcher
        self._clock = clock
        if ledger is None:
            ledger = DedupLedger(today=lambda: self._clock().astimezone().date())
        self.ledger = ledger
        self.tick_seconds = tick_seconds
        self._firing_slots = asyncio.Semaphore(max_concurrent_firings)
        self._shutdown_event = asyncio.Event()
        self._in_flight: Set[asyncio.Task] = set()
        self._running = False
        self._last_tick: Optional[TickResult] = None

    # ========================================================================
    # Tick
    # ========================================================================

    async def tick(self, now: Optional[datetime] = None) -> TickResult:
        """
        Run one tick.

        Args:
            now: Tick instant (defaults to the scheduler clock)

        Returns:
            TickResult summary
        """
        now = now or self._clock()
        result = TickResult(at=now)
        self.ledger.roll_over()

        try:
            rows = await self._store.list_enabled_reminders()
        except Exception as e:
            logger.error(f"Reminder tick aborted, cannot read reminders: {e}")
            result.aborted = True
            self._last_tick = result
            return result

        due = reminder_matcher.find_due(
            rows, now, window=timedelta(seconds=self.tick_seconds)
        )
        result.due = len(due)

        if due:
            outcomes = await asyncio.gather(
                *(self._process_firing(firing, now) for firing in due),
                return_exceptions=True,
            )
            for firing, outcome in zip(due, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(
                        f"Unexpected error processing reminder: {outcome}",
                        extra={
                            "user_id": firing.user_id,
                            "room_id": firing.room.id,
                            "minutes_before": firing.minutes_before,
                        },
                    )
                    result.errors += 1
                elif outcome == "skipped":
                    result.skipped += 1
                elif outcome == "sent":
                    result.sent += 1
                elif outcome == "undelivered":
                    result.undelivered += 1
                else:
                    result.errors += 1

        if result.sent > 0:
            logger.info(f"Sent {result.sent} room reminder(s)", extra=result.to_dict())
        elif result.errors > 0:
            logger.warning("Reminder tick finished with errors", extra=result.to_dict())

        self._last_tick = result
        return result

    async def _process_firing(self, firing: DueFiring, now: datetime) -> str:
        """
        Dispatch one due firing.

        Returns:
            "skipped", "sent", "undelivered" or "error"
        """
        key = firing_key(firing, now)
        if not self.ledger.try_begin(key):
            return "skipped"

        try:
            async with self._firing_slots:
                delivery = await self._dispatcher.send_room_reminder(
                    firing.user_id, firing.room, firing.minutes_before
                )
        except Exception as e:
            logger.error(
                f"Failed to send reminder: {e}",
                extra={
                    "user_id": firing.user_id,
                    "room_id": firing.room.id,
                    "minutes_before": firing.minutes_before,
                },
                exc_info=True,
            )
            return "error"
        finally:
            self.ledger.mark_fired(key)

        if delivery.sent_count == 0:
            return "undelivered"

        await self._record_notification(firing, delivery.sent_count)
        return "sent"

    async def _record_notification(self, firing: DueFiring, sent_count: int) -> None:
        """Write the in-app notification mirroring a delivered reminder."""
        try:
            payload = build_room_reminder_payload(firing.room, firing.minutes_before)
            record = NotificationRecord(
                user_id=firing.user_id,
                type=payload.type,
                title=payload.title[:NOTIFICATION_TITLE_MAX],
                body=payload.body[:NOTIFICATION_BODY_MAX],
                data={
                    "roomId": firing.room.id,
                    "minutesBefore": firing.minutes_before,
                },
                push_sent=sent_count > 0,
            )
            await self._store.insert_notification_record(record)
        except Exception as e:
            logger.error(
                f"Failed to record reminder notification: {e}",
                extra={"user_id": firing.user_id, "room_id": firing.room.id},
            )

    # ========================================================================
    # Loops
    # ========================================================================

    async def run(self) -> None:
        """
        Run the tick loop and the daily reset loop until shutdown.

        Ticks are aligned to multiples of tick_seconds on the wall clock.
        Each tick runs as its own task so an overrunning tick never delays
        the next one; on shutdown, in-flight ticks are awaited.
        """
        self._running = True
        logger.info(
            f"Room reminder scheduler started (tick every {self.tick_seconds}s)"
        )
        reset_task = asyncio.create_task(self._reset_loop())

        try:
            while not self._shutdown_event.is_set():
                if await self._wait(self._seconds_until_next_tick()):
                    break
                task = asyncio.create_task(self._safe_tick())
                self._in_flight.add(task)
                task.add_done_callback(self._in_flight.discard)
        finally:
            reset_task.cancel()
            await asyncio.gather(reset_task, return_exceptions=True)
            if self._in_flight:
                await asyncio.gather(*self._in_flight, return_exceptions=True)
            self._running = False
            logger.info("Room reminder scheduler stopped")

    async def _safe_tick(self) -> None:
        try:
            await self.tick()
        except Exception as e:
            logger.error(f"Unexpected error in reminder tick: {e}", exc_info=True)

    async def _reset_loop(self) -> None:
        """Clear the dedup ledger at each server-local midnight."""
        while not self._shutdown_event.is_set():
            if await self._wait(seconds_until_local_midnight(self._clock())):
                return
            self.ledger.reset_daily()

    async def _wait(self, seconds: float) -> bool:
        """
        Wait for the given delay or the shutdown signal.

        Returns:
            True if shutdown was requested
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=max(seconds, 0))
            return True
        except asyncio.TimeoutError:
            return False

    def _seconds_until_next_tick(self) -> float:
        epoch = self._clock().timestamp()
        return self.tick_seconds - (epoch % self.tick_seconds)

    def request_shutdown(self) -> None:
        """Stop issuing new ticks; an in-flight tick is allowed to finish."""
        self._shutdown_event.set()

    # ========================================================================
    # Status
    # ========================================================================

    @property
    def is_running(self) -> bool:
        return self._running and not self._shutdown_event.is_set()

    @property
    def last_tick(self) -> Optional[TickResult]:
        return self._last_tick

    def get_status(self) -> Dict[str, Any]:
        """Operator view of the scheduler state."""
        return {
            "running": self.is_running,
            "tick_seconds": self.tick_seconds,
            "ledger_day": self.ledger.day.isoformat(),
            "ledger_size": len(self.ledger),
            "in_flight_firings": self.ledger.in_flight_count,
            "last_tick": self._last_tick.to_dict() if self._last_tick else None,
        }


def firing_key(firing: DueFiring, now: datetime) -> FiringKey:
    """Dedup key of a firing: user, room, offset and the server-local day."""
    return FiringKey(
        user_id=firing.user_id,
        room_id=firing.room.id,
        minutes_before=firing.minutes_before,
        day=now.astimezone().date(),
    )


def seconds_until_local_midnight(now: datetime) -> float:
    """Seconds from ``now`` until the next midnight on the server's wall clock."""
    local_now = now.astimezone()
    next_day = local_now.date() + timedelta(days=1)
    midnight = datetime.combine(next_day, time.min).astimezone()
    return max((midnight - local_now).total_seconds(), 0.0)
