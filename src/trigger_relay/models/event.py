"""
Module: event.py
Description: Trigger event data models.

Defines the TriggerEvent model: one detected occurrence of a source
change together with its webhook delivery record. The webhook target,
headers and payload are snapshotted when the event fires, so later
edits to the trigger never change in-flight events.

Key Components:
- TriggerEvent: Event model with the delivery state machine
- EventStatus: Enum for event delivery states
- WebhookResponse: Captured response of the last attempt
- DeliveryResult: Outcome of one delivery attempt
- TriggerStats: Aggregated delivery statistics per trigger

Dependencies: pydantic, datetime, typing
Author: Trigger Relay Team
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from trigger_relay.delivery.retry import MAX_ATTEMPTS, next_retry_at, should_retry
from trigger_relay.exceptions import InvalidEventTransitionError
from trigger_relay.models.trigger import WebhookMethod


class EventStatus(str, Enum):
    """Delivery status of a trigger event."""

    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"
    RETRYING = "retrying"


TERMINAL_STATUSES = frozenset({EventStatus.DELIVERED, EventStatus.FAILED})


class WebhookResponse(BaseModel):
    """Response captured from a webhook endpoint."""

    status_code: int = Field(..., ge=0)
    body: Any = None
    headers: Dict[str, str] = Field(default_factory=dict)


class DeliveryResult(BaseModel):
    """
    Outcome of a single delivery attempt.

    status_code is 0 when no HTTP response was received (timeout or
    network error).
    """

    success: bool
    status_code: int = Field(default=0, ge=0)
    response: Optional[WebhookResponse] = None
    error: Optional[str] = None


class TriggerEvent(BaseModel):
    """
    One fired occurrence of a detected source change.

    Attributes:
        event_id: Unique event identifier (uuid4)
        trigger_id: Owning trigger
        event_type: The trigger type that produced the event
        event_data: Raw source-specific item
        status: Delivery status
        webhook_url / webhook_method / webhook_headers / webhook_payload:
            Delivery snapshot taken at fire time
        webhook_response: Response of the last attempt, if any
        attempt_count: Attempts made so far
        max_attempts: Attempt limit (fixed at 3)
        next_retry_at: When a retrying event becomes due again
    """

    model_config = ConfigDict(validate_assignment=True)

    event_id: str = Field(..., min_length=1, description="Unique event identifier")
    trigger_id: str = Field(..., min_length=1, description="Owning trigger")
    event_type: str = Field(..., min_length=1, max_length=100)
    event_data: Dict[str, Any] = Field(default_factory=dict)

    status: EventStatus = Field(default=EventStatus.PENDING)
    status_message: Optional[str] = None

    webhook_url: str = Field(..., min_length=1)
    webhook_method: WebhookMethod = "POST"
    webhook_headers: Dict[str, str] = Field(default_factory=dict)
    webhook_payload: Dict[str, Any] = Field(default_factory=dict)
    webhook_response: Optional[WebhookResponse] = None

    attempt_count: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=MAX_ATTEMPTS, ge=1)
    next_retry_at: Optional[datetime] = None

    created_at: datetime
    updated_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_attempts(self) -> 'TriggerEvent':
        """Attempts can never exceed the limit."""
        if self.attempt_count > self.max_attempts:
            raise ValueError("attempt_count cannot exceed max_attempts")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def ensure_deliverable(self) -> None:
        """
        Raises:
            InvalidEventTransitionError: If the event is already terminal
                or has no attempts left
        """
        if self.is_terminal:
            raise InvalidEventTransitionError(
                f"Event {self.event_id} is already {self.status.value}"
            )
        if self.attempt_count >= self.max_attempts:
            raise InvalidEventTransitionError(
                f"Event {self.event_id} has no delivery attempts left"
            )

    def record_attempt(self, result: DeliveryResult, now: Optional[datetime] = None) -> None:
        """
        Apply the outcome of one delivery attempt.

        pending/retrying -> delivered on success; -> retrying while
        attempts remain; -> failed once the last attempt fails.

        Raises:
            InvalidEventTransitionError: If the event is already terminal
                or has no attempts left
        """
        self.ensure_deliverable()

        now = now or datetime.now(timezone.utc)
        self.attempt_count += 1
        if result.response is not None:
            self.webhook_response = result.response

        if result.success:
            self.mark_delivered(now)
            return

        reason = (
            f"HTTP {result.status_code}" if result.status_code
            else f"Error: {result.error or 'Unknown error'}"
        )
        if should_retry(self.attempt_count, self.max_attempts):
            self.mark_retrying(reason, next_retry_at(self.attempt_count, now), now)
        else:
            self.mark_failed(reason, now)

    def mark_delivered(self, now: datetime) -> None:
        """Mark the event as successfully delivered."""
        self.status = EventStatus.DELIVERED
        self.status_message = "Successfully delivered"
        self.delivered_at = now
        self.next_retry_at = None
        self.updated_at = now

    def mark_retrying(self, reason: str, retry_at: datetime, now: datetime) -> None:
        """Schedule another attempt."""
        self.status = EventStatus.RETRYING
        self.status_message = f"{reason}. Will retry at {retry_at.isoformat()}"
        self.next_retry_at = retry_at
        self.updated_at = now

    def mark_failed(self, reason: str, now: datetime) -> None:
        """Mark the event as permanently failed."""
        self.status = EventStatus.FAILED
        self.status_message = f"{reason}. Max retries exceeded"
        self.failed_at = now
        self.next_retry_at = None
        self.updated_at = now


class TriggerStats(BaseModel):
    """Delivery statistics for one trigger."""

    total_events: int = 0
    delivered_events: int = 0
    failed_events: int = 0
    pending_events: int = 0
    avg_delivery_time_ms: float = 0.0
