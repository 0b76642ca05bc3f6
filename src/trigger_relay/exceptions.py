"""
Module: exceptions.py
Description: Exception hierarchy for trigger processing and delivery.

Trigger-level errors (fetch, configuration, credential, state conflict)
are caught at the trigger boundary and counted against the trigger's
error_count. Event-level errors guard the delivery state machine.
"""

from typing import Optional


class TriggerRelayError(Exception):
    """Base class for all Trigger Relay errors."""


class SourceFetchError(TriggerRelayError):
    """An upstream source API call failed (HTTP error or transport error)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TriggerConfigurationError(TriggerRelayError):
    """Unknown trigger type or missing/invalid config field."""


class ConnectionNotFoundError(TriggerRelayError):
    """No usable credential exists for a trigger's connection."""


class StateConflictError(TriggerRelayError):
    """The per-trigger cursor was written concurrently by another worker."""


class InvalidEventTransitionError(TriggerRelayError):
    """A delivery attempt was recorded on a terminal or exhausted event."""


class EventConflictError(TriggerRelayError):
    """The event was updated by another delivery attempt in the meantime."""


class TriggerNotFoundError(TriggerRelayError):
    """The referenced trigger does not exist."""
