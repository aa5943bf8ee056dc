"""
Unit tests for time-of-day resolution.

Tests parsing of stored opening times, zone lookup with fallback, and
resolution of wall-clock times to UTC instants across DST transitions.
"""

from datetime import date, datetime, time, timezone
from unittest.mock import patch

import pytest

from daylock.src.services import time_resolver
from daylock.src.services.exceptions import InvalidTimeOfDayError
from daylock.src.services.time_resolver import (
    load_zone,
    parse_time_of_day,
    resolve,
    resolve_on,
    zone_date,
)


@pytest.fixture(autouse=True)
def clear_zone_cache():
    load_zone.cache_clear()
    yield
    load_zone.cache_clear()


class TestParseTimeOfDay:
    """Tests for parse_time_of_day."""

    def test_parses_hours_and_minutes(self):
        assert parse_time_of_day("09:00") == time(9, 0)

    def test_parses_seconds(self):
        assert parse_time_of_day("23:59:30") == time(23, 59, 30)

    def test_accepts_time_values(self):
        assert parse_time_of_day(time(7, 15, 0, 500)) == time(7, 15)

    def test_single_digit_hour(self):
        assert parse_time_of_day("7:05") == time(7, 5)

    @pytest.mark.parametrize("value", ["", "nine", "25:00", "09:60", "09", None, 900])
    def test_rejects_invalid_values(self, value):
        """Should raise InvalidTimeOfDayError for unparsable input."""
        with pytest.raises(InvalidTimeOfDayError):
            parse_time_of_day(value)

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_time_of_day("bad")


class TestLoadZone:
    """Tests for load_zone."""

    def test_none_means_utc(self):
        assert load_zone(None).key == "UTC"

    def test_blank_means_utc(self):
        assert load_zone("  ").key == "UTC"

    def test_known_zone(self):
        assert load_zone("Europe/Paris").key == "Europe/Paris"

    def test_unknown_zone_returns_none_and_warns_once(self):
        """Unknown zones fall back with a single warning per name."""
        with patch.object(time_resolver, "logger") as mock_logger:
            assert load_zone("Mars/Olympus_Mons") is None
            assert load_zone("Mars/Olympus_Mons") is None

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["extra"] == {"timezone": "Mars/Olympus_Mons"}


class TestResolve:
    """Tests for resolve and resolve_on."""

    def test_utc_zone(self):
        reference = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
        assert resolve("09:00", "UTC", reference) == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def test_none_zone_is_utc(self):
        reference = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
        assert resolve("09:00", None, reference) == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def test_summer_offset(self):
        """09:00 in Paris during CEST is 07:00 UTC."""
        reference = datetime(2026, 7, 1, 12, 0, tzinfo=timezone.utc)
        assert resolve("09:00", "Europe/Paris", reference) == datetime(2026, 7, 1, 7, 0, tzinfo=timezone.utc)

    def test_winter_offset(self):
        """09:00 in Paris during CET is 08:00 UTC."""
        reference = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert resolve("09:00", "Europe/Paris", reference) == datetime(2026, 1, 15, 8, 0, tzinfo=timezone.utc)

    def test_today_is_taken_in_target_zone(self):
        """At 23:30 UTC it is already the next day in Tokyo."""
        reference = datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)
        assert zone_date(reference, "Asia/Tokyo") == date(2026, 3, 2)
        assert resolve("09:00", "Asia/Tokyo", reference) == datetime(2026, 3, 2, 0, 0, tzinfo=timezone.utc)

    def test_naive_reference_is_utc(self):
        reference = datetime(2026, 3, 2, 12, 0)
        assert resolve("09:00", "UTC", reference) == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def test_result_is_utc_aware(self):
        result = resolve_on(time(9, 0), "America/New_York", date(2026, 3, 2))
        assert result.tzinfo == timezone.utc

    def test_spring_forward_gap_uses_previous_offset(self):
        """02:30 does not exist in New York on 2026-03-08; EST (-5) applies."""
        result = resolve_on(time(2, 30), "America/New_York", date(2026, 3, 8))
        assert result == datetime(2026, 3, 8, 7, 30, tzinfo=timezone.utc)

    def test_fall_back_ambiguity_uses_first_occurrence(self):
        """01:30 happens twice in New York on 2026-11-01; the EDT one wins."""
        result = resolve_on(time(1, 30), "America/New_York", date(2026, 11, 1))
        assert result == datetime(2026, 11, 1, 5, 30, tzinfo=timezone.utc)

    def test_unknown_zone_uses_server_local_time(self):
        day = date(2026, 3, 2)
        expected = datetime(2026, 3, 2, 9, 0).astimezone().astimezone(timezone.utc)
        with patch.object(time_resolver, "logger"):
            assert resolve_on(time(9, 0), "Not/AZone", day) == expected

    def test_invalid_time_raises(self):
        with pytest.raises(InvalidTimeOfDayError):
            resolve("later", "UTC", datetime(2026, 3, 2, tzinfo=timezone.utc))

    def test_resolve_is_repeatable(self):
        reference = datetime(2026, 3, 29, 0, 30, tzinfo=timezone.utc)
        first = resolve("09:00", "Europe/London", reference)
        assert resolve("09:00", "Europe/London", reference) == first


class TestServerLocalFallback:
    """Unknown zones read the time-of-day on the server's own wall clock."""

    def test_unknown_zone_uses_server_zone_not_utc(self, new_york_server_zone):
        reference = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

        with patch.object(time_resolver, "logger"):
            result = resolve("09:00", "Nowhere/Place", reference)

        # 09:00 EST
        assert result == datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)

    def test_known_zone_ignores_server_zone(self, new_york_server_zone):
        reference = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
        assert resolve("09:00", "UTC", reference) == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
