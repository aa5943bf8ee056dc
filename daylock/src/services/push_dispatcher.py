"""
Push dispatcher: fan a notification out to every device a user registered.

Delivery to a user's endpoints runs concurrently; one endpoint failing never
blocks or fails another. Endpoints the push service reports as gone are
deactivated in the store and excluded from every later dispatch. Partial or
total failure is reported through counts, never raised.
"""

import asyncio
import enum
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from daylock.src.schemas.reminders import (
    PushEndpoint,
    ReminderPayload,
    ReminderPayloadData,
    RoomSchedule,
)
from daylock.src.services.exceptions import PushDeliveryError, PushGoneError
from daylock.src.services.push_transport import PushTransport
from daylock.src.services.reminder_store import AsyncReminderStore
from daylock.src.utils.logging_config import get_logger


logger = get_logger("push")

DEFAULT_BATCH_SIZE = 10
DEFAULT_ROOM_EMOJI = "📋"


class DeliveryOutcome(enum.Enum):
    """Result of one delivery attempt to one endpoint."""
    SENT = "sent"
    GONE = "gone"
    FAILED = "failed"


@dataclass
class DeliveryResult:
    """
    Aggregate delivery counts.

    Attributes:
        sent_count: Endpoints that accepted the message
        failed_count: Endpoints that did not (gone or transient)
        deactivated_count: Gone endpoints deactivated in the store
    """

    sent_count: int = 0
    failed_count: int = 0
    deactivated_count: int = 0

    def __add__(self, other: "DeliveryResult") -> "DeliveryResult":
        return DeliveryResult(
            sent_count=self.sent_count + other.sent_count,
            failed_count=self.failed_count + other.failed_count,
            deactivated_count=self.deactivated_count + other.deactivated_count,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "sent": self.sent_count,
            "failed": self.failed_count,
            "deactivated": self.deactivated_count,
        }


def format_minutes_label(minutes: int) -> str:
    """
    Human-readable reminder offset.

    Examples:
        >>> format_minutes_label(15)
        '15 min'
        >>> format_minutes_label(60)
        '1h'
        >>> format_minutes_label(90)
        '1h 30m'
    """
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}m" if rest else f"{hours}h"


def build_room_reminder_payload(room: RoomSchedule, minutes_before: int) -> ReminderPayload:
    """
    Build the push payload announcing that a room opens soon.

    Args:
        room: Room that is about to open
        minutes_before: Reminder offset in minutes

    Returns:
        ReminderPayload with a dedup tag stable per (room, offset)
    """
    return ReminderPayload(
        title=f"{room.emoji or DEFAULT_ROOM_EMOJI} {room.name} opens soon!",
        body=f"Your room opens in {format_minutes_label(minutes_before)}. Get ready!",
        data=ReminderPayloadData(
            room_id=room.id,
            minutes_before=minutes_before,
            url=f"/rooms/{room.id}",
        ),
        dedup_tag=f"room-reminder-{room.id}-{minutes_before}",
    )


class PushDispatcher:
    """
    Delivers payloads to all active push endpoints of one or many users.

    Attributes:
        batch_size: Users processed concurrently by send_to_users
        timeout: Seconds a single endpoint delivery may take
    """

    def __init__(
        self,
        store: AsyncReminderStore,
        transport: PushTransport,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout: Optional[float] = 10.0,
    ):
        """
        Initialize the dispatcher.

        Args:
            store: Async store for endpoint lookup and deactivation
            transport: Push transport performing the actual delivery
            batch_size: Users per concurrent batch in send_to_users
            timeout: Per-delivery timeout in seconds (None disables)
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._store = store
        self._transport = transport
        self.batch_size = batch_size
        self.timeout = timeout

    async def send_to_user(self, user_id: str, payload: Dict[str, Any]) -> DeliveryResult:
        """
        Send a push notification to all of a user's active endpoints.

        Args:
            user_id: Recipient user
            payload: JSON-serializable push payload

        Returns:
            DeliveryResult with per-endpoint counts. Zero endpoints is a
            normal, empty result.

        Raises:
            StoreError: If the user's endpoints cannot be fetched
        """
        endpoints = await self._store.list_active_endpoints(user_id)
        if not endpoints:
            return DeliveryResult()

        payload_json = json.dumps(payload)
        outcomes = await asyncio.gather(
            *(self._deliver(endpoint, payload_json) for endpoint in endpoints)
        )

        result = DeliveryResult()
        for outcome in outcomes:
            if outcome is DeliveryOutcome.SENT:
                result.sent_count += 1
            else:
                result.failed_count += 1
                if outcome is DeliveryOutcome.GONE:
                    result.deactivated_count += 1

        if result.failed_count > 0:
            logger.info(
                "Push delivery summary",
                extra={
                    "user_id": user_id,
                    "total": len(endpoints),
                    **result.to_dict(),
                },
            )

        return result

    async def send_to_users(self, user_ids: Iterable[str], payload: Dict[str, Any]) -> DeliveryResult:
        """
        Send the same payload to many users, batch_size users at a time.

        A user whose delivery raised (e.g. the store was unavailable) is
        logged and contributes nothing to the totals.

        Returns:
            Summed DeliveryResult across all users
        """
        user_ids = list(user_ids)
        total = DeliveryResult()

        for start in range(0, len(user_ids), self.batch_size):
            batch = user_ids[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self.send_to_user(user_id, payload) for user_id in batch),
                return_exceptions=True,
            )
            for user_id, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.warning(
                        f"Push to user failed: {result}",
                        extra={"user_id": user_id},
                    )
                    continue
                total = total + result

        return total

    async def send_room_reminder(
        self, user_id: str, room: RoomSchedule, minutes_before: int
    ) -> DeliveryResult:
        """Send the "room opens soon" push for one reminder."""
        payload = build_room_reminder_payload(room, minutes_before)
        return await self.send_to_user(user_id, payload.to_push_dict())

    async def _deliver(self, endpoint: PushEndpoint, payload_json: str) -> DeliveryOutcome:
        """Deliver to one endpoint and classify the outcome."""
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.run_in_executor(None, self._transport.deliver, endpoint, payload_json),
                timeout=self.timeout,
            )
        except PushGoneError:
            await self._deactivate(endpoint)
            return DeliveryOutcome.GONE
        except PushDeliveryError as e:
            logger.warning(
                f"Push delivery failed: {e}",
                extra={
                    "endpoint_id": endpoint.id,
                    "user_id": endpoint.user_id,
                    "status_code": e.status_code,
                    "endpoint": endpoint.endpoint_prefix,
                },
            )
            return DeliveryOutcome.FAILED
        except asyncio.TimeoutError:
            logger.warning(
                "Push delivery timed out",
                extra={
                    "endpoint_id": endpoint.id,
                    "user_id": endpoint.user_id,
                    "timeout": self.timeout,
                    "endpoint": endpoint.endpoint_prefix,
                },
            )
            return DeliveryOutcome.FAILED
        except Exception as e:
            logger.error(
                f"Unexpected error sending push: {e}",
                extra={"endpoint_id": endpoint.id, "user_id": endpoint.user_id},
                exc_info=True,
            )
            return DeliveryOutcome.FAILED

        logger.debug(
            "Push delivered",
            extra={
                "endpoint_id": endpoint.id,
                "user_id": endpoint.user_id,
                "endpoint": endpoint.endpoint_prefix,
            },
        )
        await self._touch(endpoint)
        return DeliveryOutcome.SENT

    async def _deactivate(self, endpoint: PushEndpoint) -> None:
        logger.info(
            "Deactivating expired push subscription",
            extra={
                "endpoint_id": endpoint.id,
                "user_id": endpoint.user_id,
                "endpoint": endpoint.endpoint_prefix,
            },
        )
        try:
            await self._store.deactivate_endpoint(endpoint.id)
        except Exception as e:
            logger.error(
                f"Failed to deactivate push subscription: {e}",
                extra={"endpoint_id": endpoint.id, "user_id": endpoint.user_id},
            )

    async def _touch(self, endpoint: PushEndpoint) -> None:
        try:
            await self._store.mark_endpoint_used(endpoint.id)
        except Exception as e:
            logger.debug(
                f"Failed to update last_used_at: {e}",
                extra={"endpoint_id": endpoint.id},
            )
