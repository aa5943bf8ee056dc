"""
Process entry point for the Daylock room reminder scheduler.

Runs the reminder scheduler in the foreground until SIGINT/SIGTERM. It is
deployed as a background process next to the API server and has no
commands beyond start and stop.

Environment Variables:
    VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY / VAPID_SUBJECT: Web Push credentials
    DAYLOCK_DB_URL: Database URL
    DAYLOCK_ENV: Environment (production/development, default: development)
    DAYLOCK_LOG_LEVEL: Log level (default: INFO)
"""

import asyncio
import signal
import sys
from typing import Optional

from sqlalchemy.orm import sessionmaker

from daylock.src.config.settings import AppSettings, get_settings
from daylock.src.services.exceptions import PushNotConfiguredError
from daylock.src.services.push_dispatcher import PushDispatcher
from daylock.src.services.push_transport import WebPushTransport
from daylock.src.services.reminder_scheduler import ReminderScheduler
from daylock.src.services.reminder_store import AsyncReminderStore
from daylock.src.utils.logging_config import get_logger, init_logging


def build_scheduler(
    settings: AppSettings, session_factory: sessionmaker
) -> Optional[ReminderScheduler]:
    """
    Wire store, transport, dispatcher and scheduler together.

    Returns:
        The scheduler, or None when Web Push is not configured
    """
    logger = get_logger("scheduler")

    try:
        transport = WebPushTransport.from_settings(settings)
    except PushNotConfiguredError:
        logger.warning(
            "Reminder scheduler skipped (Web Push not configured). "
            "Run setup_vapid_keys.py and set VAPID_PUBLIC_KEY/VAPID_PRIVATE_KEY."
        )
        return None

    store = AsyncReminderStore.from_sessionmaker(
        session_factory, timeout=settings.store_timeout_seconds
    )
    dispatcher = PushDispatcher(
        store=store,
        transport=transport,
        batch_size=settings.push_batch_size,
        timeout=settings.push_timeout_seconds,
    )
    return ReminderScheduler(
        store=store,
        dispatcher=dispatcher,
        tick_seconds=settings.reminder_tick_seconds,
        max_concurrent_firings=settings.push_batch_size,
    )


class SchedulerRunner:
    """
    Runs the scheduler until a shutdown signal arrives.

    When Web Push is not configured the runner stays idle (no ticks) until
    shutdown, so the host's process supervisor does not restart-loop it.
    """

    def __init__(self, scheduler: Optional[ReminderScheduler]):
        self.scheduler = scheduler
        self._shutdown_event = asyncio.Event()

    async def run(self) -> int:
        """
        Run until shutdown.

        Returns:
            Exit code (always 0)
        """
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.request_shutdown)

        if self.scheduler is None:
            await self._shutdown_event.wait()
            return 0

        await self.scheduler.run()
        return 0

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()
        if self.scheduler is not None:
            self.scheduler.request_shutdown()


def run_scheduler() -> int:
    """
    Run the reminder scheduler process.

    Returns:
        Exit code
    """
    init_logging()
    from daylock.src.db.database import SessionLocal, dispose_engine

    scheduler = build_scheduler(get_settings(), SessionLocal)
    try:
        return asyncio.run(SchedulerRunner(scheduler).run())
    finally:
        dispose_engine()


if __name__ == "__main__":
    sys.exit(run_scheduler())
