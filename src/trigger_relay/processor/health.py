"""
Module: health.py
Description: Trigger health transition.

Folds the outcome of one poll into a trigger's health fields. Kept pure
so the circuit breaker can be tested without storage; the processor
persists the result with a single repository write.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from trigger_relay.models.trigger import MAX_CONSECUTIVE_ERRORS, Trigger


class PollOutcome(BaseModel):
    """
    Outcome of processing one trigger.

    Attributes:
        checked_at: When processing started
        events_fired: Number of events the poll produced
        error: Failure message, None when processing succeeded
    """

    checked_at: datetime
    events_fired: int = Field(default=0, ge=0)
    error: Optional[str] = None


def apply_outcome(trigger: Trigger, outcome: PollOutcome) -> Trigger:
    """
    Return the trigger with its health fields updated for the outcome.

    Success stamps last_triggered_at when events fired and resets the
    error streak. Failure extends the streak and deactivates the trigger
    once it reaches MAX_CONSECUTIVE_ERRORS.
    """
    changes = {'last_checked_at': outcome.checked_at}

    if outcome.error is None:
        if outcome.events_fired > 0:
            changes['last_triggered_at'] = outcome.checked_at
        changes['error_count'] = 0
        changes['last_error'] = None
    else:
        error_count = trigger.error_count + 1
        changes['error_count'] = error_count
        changes['last_error'] = outcome.error
        if error_count >= MAX_CONSECUTIVE_ERRORS:
            changes['is_active'] = False

    return trigger.model_copy(update=changes)
