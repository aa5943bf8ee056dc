"""
Service layer for reminder scheduling and push delivery.

This module exports the service classes wired together by the process
entry point.
"""

from daylock.src.services.dedup_ledger import DedupLedger, FiringKey
from daylock.src.services.exceptions import (
    ServiceError,
    PushNotConfiguredError,
    PushDeliveryError,
    PushGoneError,
    StoreError,
    InvalidTimeOfDayError,
)
from daylock.src.services.push_dispatcher import DeliveryResult, PushDispatcher
from daylock.src.services.push_transport import PushTransport, WebPushTransport
from daylock.src.services.reminder_matcher import DueFiring, find_due
from daylock.src.services.reminder_scheduler import ReminderScheduler, TickResult
from daylock.src.services.reminder_store import AsyncReminderStore, ReminderStore

__all__ = [
    "DedupLedger",
    "FiringKey",
    "ServiceError",
    "PushNotConfiguredError",
    "PushDeliveryError",
    "PushGoneError",
    "StoreError",
    "InvalidTimeOfDayError",
    "DeliveryResult",
    "PushDispatcher",
    "PushTransport",
    "WebPushTransport",
    "DueFiring",
    "find_due",
    "ReminderScheduler",
    "TickResult",
    "AsyncReminderStore",
    "ReminderStore",
]
