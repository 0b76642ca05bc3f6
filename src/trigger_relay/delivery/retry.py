"""
Module: delivery/retry.py
Description: Retry schedule for webhook delivery.

Failed delivery attempts are retried on a fixed backoff table indexed by
the 1-based number of the attempt that failed. The table is a lookup,
not a formula, and saturates at its last entry.
"""

from datetime import datetime, timedelta
from typing import Tuple

MAX_ATTEMPTS = 3

RETRY_DELAYS: Tuple[timedelta, ...] = (
    timedelta(minutes=1),   # after attempt 1
    timedelta(minutes=5),   # after attempt 2
    timedelta(minutes=15),  # after attempt 3, only reachable if max_attempts > 3
)


def retry_delay(attempt_number: int) -> timedelta:
    """
    Backoff delay after the given failed attempt.

    Args:
        attempt_number: 1-based number of the attempt that failed

    Returns:
        Delay before the next attempt

    Raises:
        ValueError: If attempt_number is not positive
    """
    if attempt_number < 1:
        raise ValueError("attempt_number must be >= 1")
    return RETRY_DELAYS[min(attempt_number, len(RETRY_DELAYS)) - 1]


def next_retry_at(attempt_number: int, now: datetime) -> datetime:
    """Absolute time of the next attempt after a failure."""
    return now + retry_delay(attempt_number)


def should_retry(attempt_count: int, max_attempts: int = MAX_ATTEMPTS) -> bool:
    """True while attempts remain after attempt_count attempts have been made."""
    return attempt_count < max_attempts
