"""
Durable store access for the reminder engine.

ReminderStore implements the four store operations the engine needs on top
of SQLAlchemy. Each call opens its own short-lived session so calls can run
concurrently from worker threads.

AsyncReminderStore runs those calls in the event loop's default executor,
bounded by a per-call timeout, and converts database errors and timeouts
into StoreError.
"""

import asyncio
from datetime import datetime
from functools import partial
from typing import Any, Callable, List, Optional, Tuple, TypeVar

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from daylock.src.models import (
    Notification,
    NotificationPreference,
    PushSubscription,
    Room,
    RoomReminder,
)
from daylock.src.schemas.reminders import (
    NotificationRecord,
    PushEndpoint,
    ReminderConfig,
    RoomSchedule,
)
from daylock.src.services.exceptions import StoreError
from daylock.src.utils.logging_config import get_logger


logger = get_logger("db")

T = TypeVar("T")

ReminderRow = Tuple[ReminderConfig, RoomSchedule]


class ReminderStore:
    """
    Synchronous SQLAlchemy implementation of the engine's store interface.

    Usage:
        store = ReminderStore(SessionLocal)
        rows = store.list_enabled_reminders()
    """

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Args:
            session_factory: Callable returning a new Session (e.g. a sessionmaker)
        """
        self._session_factory = session_factory

    def list_enabled_reminders(self) -> List[ReminderRow]:
        """
        List enabled reminders joined with their room.

        Users who switched off room-opening notifications are excluded;
        users without a preference row are treated as opted in.
        """
        stmt = (
            select(RoomReminder, Room)
            .join(Room, RoomReminder.room_id == Room.id)
            .outerjoin(
                NotificationPreference,
                NotificationPreference.user_id == RoomReminder.user_id,
            )
            .where(
                RoomReminder.enabled.is_(True),
                or_(
                    NotificationPreference.user_id.is_(None),
                    NotificationPreference.room_opening.is_(True),
                ),
            )
        )
        with self._session_factory() as db:
            rows = db.execute(stmt).all()
            return [
                (ReminderConfig.model_validate(reminder), RoomSchedule.model_validate(room))
                for reminder, room in rows
            ]

    def list_active_endpoints(self, user_id: str) -> List[PushEndpoint]:
        """List a user's push subscriptions that have not been deactivated."""
        stmt = select(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.active.is_(True),
        )
        with self._session_factory() as db:
            return [PushEndpoint.model_validate(sub) for sub in db.scalars(stmt)]

    def deactivate_endpoint(self, endpoint_id: int) -> bool:
        """
        Mark a subscription inactive after the push service reported it gone.

        Returns:
            True if a subscription was found
        """
        with self._session_factory() as db:
            subscription = db.get(PushSubscription, endpoint_id)
            if subscription is None:
                return False
            subscription.active = False
            db.commit()
            return True

    def mark_endpoint_used(self, endpoint_id: int) -> None:
        """Stamp last_used_at after a successful delivery."""
        with self._session_factory() as db:
            subscription = db.get(PushSubscription, endpoint_id)
            if subscription is not None:
                subscription.last_used_at = datetime.utcnow()
                db.commit()

    def insert_notification_record(self, record: NotificationRecord) -> int:
        """
        Persist an in-app notification.

        Returns:
            ID of the created notification
        """
        notification = Notification(
            user_id=record.user_id,
            type=record.type,
            title=record.title,
            body=record.body,
            data=record.data,
            push_sent=record.push_sent,
        )
        with self._session_factory() as db:
            db.add(notification)
            db.commit()
            db.refresh(notification)
            return notification.id


class AsyncReminderStore:
    """
    Async facade over ReminderStore with a per-call timeout.

    Attributes:
        timeout: Seconds a single store call may take
    """

    def __init__(self, store: ReminderStore, timeout: Optional[float] = 15.0):
        self._store = store
        self.timeout = timeout

    @classmethod
    def from_sessionmaker(
        cls, session_factory: sessionmaker, timeout: Optional[float] = 15.0
    ) -> "AsyncReminderStore":
        return cls(ReminderStore(session_factory), timeout=timeout)

    async def list_enabled_reminders(self) -> List[ReminderRow]:
        return await self._call("list_enabled_reminders", self._store.list_enabled_reminders)

    async def list_active_endpoints(self, user_id: str) -> List[PushEndpoint]:
        return await self._call(
            "list_active_endpoints", self._store.list_active_endpoints, user_id
        )

    async def deactivate_endpoint(self, endpoint_id: int) -> bool:
        return await self._call(
            "deactivate_endpoint", self._store.deactivate_endpoint, endpoint_id
        )

    async def mark_endpoint_used(self, endpoint_id: int) -> None:
        await self._call("mark_endpoint_used", self._store.mark_endpoint_used, endpoint_id)

    async def insert_notification_record(self, record: NotificationRecord) -> int:
        return await self._call(
            "insert_notification_record", self._store.insert_notification_record, record
        )

    async def _call(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, partial(func, *args)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(
                "Store call timed out",
                extra={"operation": operation, "timeout": self.timeout},
            )
            raise StoreError(operation, f"timed out after {self.timeout}s") from e
        except SQLAlchemyError as e:
            raise StoreError(operation, str(e)) from e
