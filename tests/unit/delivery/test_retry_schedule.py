"""
Module: test_retry_schedule.py
Description: Unit tests for the fixed webhook retry schedule.
"""

from datetime import datetime, timedelta, timezone

import pytest

from trigger_relay.delivery.retry import MAX_ATTEMPTS, next_retry_at, retry_delay, should_retry


class TestRetrySchedule:
    """Test cases for backoff lookups."""

    def test_table_values(self):
        assert retry_delay(1) == timedelta(minutes=1)
        assert retry_delay(2) == timedelta(minutes=5)
        assert retry_delay(3) == timedelta(minutes=15)

    def test_saturates_at_last_entry(self):
        assert retry_delay(4) == timedelta(minutes=15)
        assert retry_delay(50) == timedelta(minutes=15)

    def test_attempt_number_is_one_based(self):
        with pytest.raises(ValueError):
            retry_delay(0)

    def test_next_retry_at(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert next_retry_at(2, now) == now + timedelta(minutes=5)

    def test_should_retry(self):
        assert MAX_ATTEMPTS == 3
        assert should_retry(1)
        assert should_retry(2)
        assert not should_retry(3)
