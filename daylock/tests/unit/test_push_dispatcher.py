"""
Unit tests for PushDispatcher.

Uses an in-process fake transport and an AsyncMock store, so delivery
outcomes are decided per endpoint URL.
"""

import json
import threading
import time
from unittest.mock import AsyncMock, patch

import pytest

from daylock.src.services import push_dispatcher
from daylock.src.services.exceptions import PushDeliveryError, PushGoneError, StoreError
from daylock.src.services.push_dispatcher import (
    DeliveryResult,
    PushDispatcher,
    build_room_reminder_payload,
    format_minutes_label,
)


class FakeTransport:
    """Transport whose outcome is chosen per endpoint URL."""

    def __init__(self, outcomes=None, delay=0.0):
        self.outcomes = outcomes or {}
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def deliver(self, endpoint, payload_json):
        with self._lock:
            self.calls.append((endpoint.endpoint, payload_json))
        if self.delay:
            time.sleep(self.delay)
        outcome = self.outcomes.get(endpoint.endpoint)
        if outcome == "gone":
            raise PushGoneError(endpoint.endpoint)
        if outcome == "transient":
            raise PushDeliveryError("503 Service Unavailable", status_code=503)
        if outcome == "crash":
            raise RuntimeError("unexpected")


@pytest.fixture
def mock_store():
    store = AsyncMock()
    store.list_active_endpoints.return_value = []
    return store


@pytest.fixture(autouse=True)
def mock_logger():
    with patch.object(push_dispatcher, "logger") as logger:
        yield logger


# ============================================================================
# Test: payload
# ============================================================================


class TestReminderPayload:
    """Tests for the room reminder payload."""

    @pytest.mark.parametrize("minutes,label", [
        (0, "0 min"),
        (15, "15 min"),
        (60, "1h"),
        (90, "1h 30m"),
        (120, "2h"),
    ])
    def test_minutes_label(self, minutes, label):
        assert format_minutes_label(minutes) == label

    def test_payload_fields(self, sample_room):
        payload = build_room_reminder_payload(sample_room(id=7, name="Deep Work", emoji="🧠"), 15)
        data = payload.to_push_dict()

        assert data["type"] == "room_opening"
        assert data["title"] == "🧠 Deep Work opens soon!"
        assert data["body"] == "Your room opens in 15 min. Get ready!"
        assert data["data"] == {"roomId": 7, "minutesBefore": 15, "url": "/rooms/7"}
        assert data["dedupTag"] == "room-reminder-7-15"
        assert data["icon"]
        assert data["badge"]

    def test_payload_default_emoji(self, sample_room):
        payload = build_room_reminder_payload(sample_room(emoji=None, name="Gym"), 5)
        assert payload.title == "📋 Gym opens soon!"

    def test_dedup_tag_depends_on_offset(self, sample_room):
        room = sample_room()
        assert (
            build_room_reminder_payload(room, 5).dedup_tag
            != build_room_reminder_payload(room, 15).dedup_tag
        )


# ============================================================================
# Test: send_to_user
# ============================================================================


class TestSendToUser:
    """Tests for PushDispatcher.send_to_user."""

    @pytest.mark.asyncio
    async def test_no_endpoints(self, mock_store):
        transport = FakeTransport()
        dispatcher = PushDispatcher(mock_store, transport)

        result = await dispatcher.send_to_user("user-1", {"title": "Hi"})

        assert result == DeliveryResult(0, 0, 0)
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_mixed_outcomes(self, mock_store, sample_endpoint):
        """One success, one gone, one transient: only the gone one is deactivated."""
        ok, gone, flaky = sample_endpoint(1), sample_endpoint(2), sample_endpoint(3)
        mock_store.list_active_endpoints.return_value = [ok, gone, flaky]
        transport = FakeTransport({gone.endpoint: "gone", flaky.endpoint: "transient"})
        dispatcher = PushDispatcher(mock_store, transport)

        result = await dispatcher.send_to_user("user-1", {"title": "Hi"})

        assert result.sent_count == 1
        assert result.failed_count == 2
        assert result.deactivated_count == 1
        mock_store.deactivate_endpoint.assert_awaited_once_with(2)
        mock_store.mark_endpoint_used.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_payload_serialized_once_as_json(self, mock_store, sample_endpoint):
        mock_store.list_active_endpoints.return_value = [sample_endpoint(1), sample_endpoint(2)]
        transport = FakeTransport()
        dispatcher = PushDispatcher(mock_store, transport)

        await dispatcher.send_to_user("user-1", {"title": "Hi"})

        assert len(transport.calls) == 2
        assert all(json.loads(payload) == {"title": "Hi"} for _, payload in transport.calls)

    @pytest.mark.asyncio
    async def test_unexpected_error_counts_as_failure(self, mock_store, sample_endpoint, mock_logger):
        endpoint = sample_endpoint()
        mock_store.list_active_endpoints.return_value = [endpoint]
        dispatcher = PushDispatcher(mock_store, FakeTransport({endpoint.endpoint: "crash"}))

        result = await dispatcher.send_to_user("user-1", {})

        assert result == DeliveryResult(sent_count=0, failed_count=1, deactivated_count=0)
        mock_store.deactivate_endpoint.assert_not_awaited()
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self, mock_store, sample_endpoint):
        mock_store.list_active_endpoints.return_value = [sample_endpoint()]
        dispatcher = PushDispatcher(mock_store, FakeTransport(delay=0.3), timeout=0.05)

        result = await dispatcher.send_to_user("user-1", {})

        assert result.failed_count == 1
        assert result.deactivated_count == 0

    @pytest.mark.asyncio
    async def test_deliveries_run_concurrently(self, mock_store, sample_endpoint):
        mock_store.list_active_endpoints.return_value = [sample_endpoint(i) for i in range(1, 5)]
        dispatcher = PushDispatcher(mock_store, FakeTransport(delay=0.2))

        started = time.monotonic()
        result = await dispatcher.send_to_user("user-1", {})

        assert result.sent_count == 4
        assert time.monotonic() - started < 0.6

    @pytest.mark.asyncio
    async def test_deactivation_failure_is_logged(self, mock_store, sample_endpoint, mock_logger):
        endpoint = sample_endpoint()
        mock_store.list_active_endpoints.return_value = [endpoint]
        mock_store.deactivate_endpoint.side_effect = StoreError("deactivate_endpoint", "down")
        dispatcher = PushDispatcher(mock_store, FakeTransport({endpoint.endpoint: "gone"}))

        result = await dispatcher.send_to_user("user-1", {})

        assert result.deactivated_count == 1
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_endpoint_lookup_failure_propagates(self, mock_store):
        mock_store.list_active_endpoints.side_effect = StoreError("list_active_endpoints", "down")
        dispatcher = PushDispatcher(mock_store, FakeTransport())

        with pytest.raises(StoreError):
            await dispatcher.send_to_user("user-1", {})


# ============================================================================
# Test: send_to_users / send_room_reminder
# ============================================================================


class TestBulkAndReminder:
    """Tests for multi-user sends and the room reminder helper."""

    def test_batch_size_must_be_positive(self, mock_store):
        with pytest.raises(ValueError):
            PushDispatcher(mock_store, FakeTransport(), batch_size=0)

    @pytest.mark.asyncio
    async def test_send_to_users_sums_results(self, mock_store, sample_endpoint):
        endpoints = {
            "user-1": [sample_endpoint(1, "user-1")],
            "user-2": [sample_endpoint(2, "user-2"), sample_endpoint(3, "user-2")],
            "user-3": [],
        }
        mock_store.list_active_endpoints.side_effect = lambda user_id: endpoints[user_id]
        dispatcher = PushDispatcher(mock_store, FakeTransport(), batch_size=2)

        result = await dispatcher.send_to_users(["user-1", "user-2", "user-3"], {})

        assert result.sent_count == 3
        assert result.failed_count == 0

    @pytest.mark.asyncio
    async def test_send_to_users_skips_failed_user(self, mock_store, sample_endpoint, mock_logger):
        def lookup(user_id):
            if user_id == "user-2":
                raise StoreError("list_active_endpoints", "down")
            return [sample_endpoint(1, user_id)]

        mock_store.list_active_endpoints.side_effect = lookup
        dispatcher = PushDispatcher(mock_store, FakeTransport())

        result = await dispatcher.send_to_users(["user-1", "user-2"], {})

        assert result.sent_count == 1
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_send_room_reminder(self, mock_store, sample_endpoint, sample_room):
        mock_store.list_active_endpoints.return_value = [sample_endpoint()]
        transport = FakeTransport()
        dispatcher = PushDispatcher(mock_store, transport)

        result = await dispatcher.send_room_reminder("user-1", sample_room(id=3, name="Yoga"), 90)

        assert result.sent_count == 1
        sent = json.loads(transport.calls[0][1])
        assert sent["body"] == "Your room opens in 1h 30m. Get ready!"
        assert sent["dedupTag"] == "room-reminder-3-90"
