"""
Module: service.py
Description: Trigger processing and webhook delivery orchestration.

One sweep polls every due trigger, persists the events it detects,
delivers them to the trigger's webhook, redelivers events whose retry
is due and deletes expired terminal events. Failures are isolated at
the trigger and event boundary: nothing raised while handling one
trigger or one event reaches the others.

Key Components:
- TriggerProcessor: Sweep orchestration
- TriggerResult: Outcome of processing one trigger
- SweepSummary: Counters reported by one sweep
- create_processor(): Wiring from application settings

Dependencies: asyncio, pydantic, datetime, typing
Author: Trigger Relay Team
"""

import asyncio
import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from trigger_relay.config import Settings, settings
from trigger_relay.connections import ConnectionProvider, DynamoDBConnectionProvider
from trigger_relay.delivery.push import WebhookDeliveryClient
from trigger_relay.exceptions import EventConflictError, TriggerNotFoundError
from trigger_relay.models.event import TriggerEvent
from trigger_relay.models.source import parse_source_config
from trigger_relay.models.state import TriggerState
from trigger_relay.models.trigger import Trigger
from trigger_relay.processor.health import PollOutcome, apply_outcome
from trigger_relay.sources import SourceHandlers
from trigger_relay.sources.base import format_rfc3339
from trigger_relay.storage.dynamodb import DynamoDBTriggerRepository
from trigger_relay.utils.batch_helpers import chunk_list
from trigger_relay.utils.logger import get_logger
from trigger_relay.utils.metrics import MetricsClient

logger = get_logger(__name__)

RETRY_BATCH_LIMIT = 50
STALE_PENDING_LIMIT = 100

# Upper bound on how early a trigger counts as due, absorbing scheduler jitter
MAX_CLAIM_GRACE = timedelta(seconds=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TriggerResult(BaseModel):
    """Outcome of processing one trigger."""

    trigger_id: str
    success: bool
    events_fired: int = 0
    error: Optional[str] = None
    disabled: bool = False


class SweepSummary(BaseModel):
    """Counters reported by one sweep."""

    triggers_processed: int = 0
    triggers_failed: int = 0
    triggers_disabled: int = 0
    events_fired: int = 0
    events_retried: int = 0
    events_cleaned: int = 0
    errors: List[str] = Field(default_factory=list)
    duration_ms: float = 0.0


class TriggerProcessor:
    """
    Polls due triggers and delivers the events they produce.

    Attributes:
        repository: Trigger repository (triggers, cursors, events)
        connections: Credential lookup for trigger connections
        delivery_client: Webhook delivery client
        handlers: Source handler set
        metrics_client: Optional CloudWatch metrics client

    Example:
        >>> processor = create_processor()
        >>> summary = await processor.run_sweep()
    """

    def __init__(
        self,
        repository: DynamoDBTriggerRepository,
        connections: ConnectionProvider,
        delivery_client: Optional[WebhookDeliveryClient] = None,
        handlers: Optional[SourceHandlers] = None,
        metrics_client: Optional[MetricsClient] = None,
        batch_size: int = 10,
        poll_interval: timedelta = timedelta(minutes=5),
        stale_pending_after: timedelta = timedelta(minutes=10),
        retention: timedelta = timedelta(days=30),
        clock: Optional[Callable[[], datetime]] = None
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.repository = repository
        self.connections = connections
        self.delivery_client = delivery_client or WebhookDeliveryClient()
        self.handlers = handlers or SourceHandlers()
        self.metrics_client = metrics_client
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        self.stale_pending_after = stale_pending_after
        self.retention = retention
        self.clock = clock or _utcnow
        self.claim_grace = min(MAX_CLAIM_GRACE, poll_interval / 10)
        # Serializes work on one trigger within this process
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _trigger_lock(self, trigger_id: str):
        """Per-trigger lock, forgotten once nobody holds or awaits it."""
        lock = self._locks.setdefault(trigger_id, asyncio.Lock())
        self._lock_users[trigger_id] = self._lock_users.get(trigger_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[trigger_id] -= 1
            if not self._lock_users[trigger_id]:
                del self._lock_users[trigger_id]
                del self._locks[trigger_id]

    # ========== Triggers ==========

    async def process_active_triggers(self) -> List[TriggerResult]:
        """
        Process every trigger due for a check, in concurrent batches.

        A trigger is processed only if this sweep wins the conditional
        claim on its last_checked_at. Exceptions from one trigger are
        collected, never propagated to the rest of the batch.

        Returns:
            Results of the triggers this sweep processed
        """
        now = self.clock()
        cutoff = now - self.poll_interval + self.claim_grace
        triggers = await self.repository.find_triggers_due_for_check(cutoff)

        logger.info("Found triggers due for check", count=len(triggers), cutoff=cutoff.isoformat())

        results: List[TriggerResult] = []
        for batch in chunk_list(triggers, self.batch_size):
            outcomes = await asyncio.gather(
                *(self._claim_and_process(trigger, now, cutoff) for trigger in batch),
                return_exceptions=True
            )
            for trigger, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(
                        "Unexpected error processing trigger",
                        trigger_id=trigger.trigger_id,
                        error=str(outcome),
                        error_type=type(outcome).__name__
                    )
                    results.append(TriggerResult(
                        trigger_id=trigger.trigger_id,
                        success=False,
                        error=str(outcome) or type(outcome).__name__
                    ))
                elif outcome is not None:
                    results.append(outcome)

        return results

    async def _claim_and_process(
        self,
        trigger: Trigger,
        now: datetime,
        cutoff: datetime
    ) -> Optional[TriggerResult]:
        if not await self.repository.claim_trigger(trigger.trigger_id, now, cutoff):
            return None
        return await self._process_claimed(trigger, now)

    async def process_trigger(self, trigger: Trigger) -> TriggerResult:
        """
        Process one trigger immediately, whether or not it is due.

        Args:
            trigger: Trigger to poll

        Returns:
            TriggerResult describing the outcome
        """
        now = self.clock()
        await self.repository.update_last_checked(trigger.trigger_id, now)
        return await self._process_claimed(trigger, now)

    async def _process_claimed(self, trigger: Trigger, now: datetime) -> TriggerResult:
        async with self._trigger_lock(trigger.trigger_id):
            events: List[TriggerEvent] = []
            error = None
            try:
                events = await self.check_for_events(trigger, now)
                for event in events:
                    await self._deliver_fired_event(event)
            except Exception as e:
                error = str(e) or type(e).__name__
                logger.error(
                    "Trigger processing failed",
                    trigger_id=trigger.trigger_id,
                    trigger_type=trigger.trigger_type,
                    error=error,
                    error_type=type(e).__name__,
                    error_count=trigger.error_count + 1
                )

            updated = apply_outcome(
                trigger,
                PollOutcome(checked_at=now, events_fired=len(events), error=error)
            )
            disabled = trigger.is_active and not updated.is_active

            try:
                await self.repository.save_health(updated)
            except TriggerNotFoundError:
                logger.warning("Trigger deleted while processing", trigger_id=trigger.trigger_id)

            if disabled:
                logger.warning(
                    "Trigger disabled after consecutive failures",
                    trigger_id=trigger.trigger_id,
                    error_count=updated.error_count,
                    last_error=updated.last_error
                )

            return TriggerResult(
                trigger_id=trigger.trigger_id,
                success=error is None,
                events_fired=len(events),
                error=error,
                disabled=disabled
            )

    async def _deliver_fired_event(self, event: TriggerEvent) -> None:
        """
        First delivery attempt of a freshly fired event.

        Errors here belong to the event, not the trigger poll: the event
        is already stored and the retry sweep picks it up again.
        """
        try:
            await self.deliver_event(event)
        except EventConflictError as e:
            logger.warning(
                "Event delivery recorded concurrently, skipping",
                event_id=event.event_id,
                trigger_id=event.trigger_id,
                error=str(e)
            )
        except Exception as e:
            logger.error(
                "Event delivery could not be recorded",
                event_id=event.event_id,
                trigger_id=event.trigger_id,
                error=str(e),
                error_type=type(e).__name__
            )

    async def check_for_events(self, trigger: Trigger, now: Optional[datetime] = None) -> List[TriggerEvent]:
        """
        Poll a trigger's source and persist what it detected.

        New events are stored as pending before the advanced cursor is
        committed, so a crash in between can duplicate but never lose an
        event.

        Returns:
            The persisted events, in source order

        Raises:
            TriggerConfigurationError: Unknown trigger type or bad config
            ConnectionNotFoundError: Credential unavailable
            SourceFetchError: Source API failed
            StateConflictError: Cursor written concurrently
        """
        now = now or self.clock()
        config = parse_source_config(trigger.trigger_type, trigger.config)
        handler = self.handlers.for_config(config)
        access_token = await self.connections.get_access_token(trigger.connection_id)
        state = (
            await self.repository.get_state(trigger.trigger_id)
            or TriggerState(trigger_id=trigger.trigger_id)
        )

        result = await handler.check_for_events(config, state, access_token, now)

        events = [self._build_event(trigger, raw_event) for raw_event in result.events]
        for event in events:
            await self.repository.create_event(event)

        if result.new_state is not None:
            await self.repository.set_state(result.new_state)

        if events:
            logger.info(
                "Trigger fired events",
                trigger_id=trigger.trigger_id,
                trigger_type=trigger.trigger_type,
                count=len(events)
            )
        return events

    def _build_event(self, trigger: Trigger, raw_event: Dict[str, Any]) -> TriggerEvent:
        """Snapshot the webhook target and build the delivery envelope."""
        now = self.clock()
        event_id = str(uuid4())
        payload = {
            'id': event_id,
            'trigger': {
                'id': trigger.trigger_id,
                'name': trigger.name,
                'type': trigger.trigger_type,
            },
            'event': raw_event,
            'timestamp': format_rfc3339(now),
        }
        return TriggerEvent(
            event_id=event_id,
            trigger_id=trigger.trigger_id,
            event_type=trigger.trigger_type,
            event_data=raw_event,
            webhook_url=trigger.webhook_url,
            webhook_method=trigger.webhook_method,
            webhook_headers=dict(trigger.webhook_headers),
            webhook_payload=payload,
            created_at=now,
            updated_at=now
        )

    # ========== Events ==========

    async def deliver_event(self, event: TriggerEvent) -> TriggerEvent:
        """
        Make one delivery attempt and persist its outcome.

        Webhook failures never raise; they move the event to retrying or
        failed.

        Raises:
            InvalidEventTransitionError: If the event cannot be attempted
            EventConflictError: If another attempt was recorded meanwhile
        """
        event.ensure_deliverable()
        expected_attempt_count = event.attempt_count

        result = await self.delivery_client.deliver(event)
        event.record_attempt(result, self.clock())
        await self.repository.update_event_delivery(event, expected_attempt_count)

        logger.info(
            "Delivery attempt recorded",
            event_id=event.event_id,
            trigger_id=event.trigger_id,
            status=event.status.value,
            attempt_count=event.attempt_count,
            next_retry_at=event.next_retry_at.isoformat() if event.next_retry_at else None
        )
        return event

    async def retry_failed_events(self) -> int:
        """
        Redeliver events whose retry is due and stale pending events.

        Returns:
            Number of delivery attempts made
        """
        now = self.clock()
        due = await self.repository.find_events_for_retry(now, limit=RETRY_BATCH_LIMIT)
        stale = await self.repository.find_stale_pending_events(
            now - self.stale_pending_after,
            limit=STALE_PENDING_LIMIT
        )

        if stale:
            logger.warning("Found stale pending events", count=len(stale))

        attempted = 0
        for event in due + stale:
            try:
                await self.deliver_event(event)
                attempted += 1
            except Exception as e:
                logger.error(
                    "Event redelivery failed",
                    event_id=event.event_id,
                    trigger_id=event.trigger_id,
                    error=str(e),
                    error_type=type(e).__name__
                )

        logger.info("Retry sweep completed", due=len(due), stale=len(stale), attempted=attempted)
        return attempted

    async def cleanup_old_events(self) -> int:
        """Delete delivered and failed events past the retention period."""
        return await self.repository.delete_old_events(self.clock() - self.retention)

    # ========== Sweep ==========

    async def run_sweep(self) -> SweepSummary:
        """
        Run one full sweep: due triggers, retries, retention cleanup.

        A failing phase is logged and reported in the summary; the
        remaining phases still run.
        """
        started = time.monotonic()
        summary = SweepSummary()

        try:
            results = await self.process_active_triggers()
            summary.triggers_processed = len(results)
            summary.triggers_failed = sum(1 for r in results if not r.success)
            summary.triggers_disabled = sum(1 for r in results if r.disabled)
            summary.events_fired = sum(r.events_fired for r in results)
        except Exception as e:
            logger.error("Trigger phase of sweep failed", error=str(e), error_type=type(e).__name__)
            summary.errors.append(f"triggers: {e}")

        try:
            summary.events_retried = await self.retry_failed_events()
        except Exception as e:
            logger.error("Retry phase of sweep failed", error=str(e), error_type=type(e).__name__)
            summary.errors.append(f"retries: {e}")

        try:
            summary.events_cleaned = await self.cleanup_old_events()
        except Exception as e:
            logger.error("Cleanup phase of sweep failed", error=str(e), error_type=type(e).__name__)
            summary.errors.append(f"cleanup: {e}")

        summary.duration_ms = (time.monotonic() - started) * 1000
        self._publish_metrics(summary)

        logger.info("Sweep completed", **summary.model_dump(exclude={'errors'}), errors=len(summary.errors))
        return summary

    def _publish_metrics(self, summary: SweepSummary) -> None:
        if self.metrics_client is None:
            return
        self.metrics_client.put_metrics({
            'TriggersProcessed': summary.triggers_processed,
            'TriggersFailed': summary.triggers_failed,
            'TriggersDisabled': summary.triggers_disabled,
            'EventsFired': summary.events_fired,
            'EventsRetried': summary.events_retried,
            'EventsCleaned': summary.events_cleaned,
        })
        self.metrics_client.put_metrics(
            {'SweepDuration': summary.duration_ms},
            unit='Milliseconds'
        )


def create_processor(app_settings: Settings = settings) -> TriggerProcessor:
    """Build a TriggerProcessor wired from application settings."""
    repository = DynamoDBTriggerRepository(
        triggers_table_name=app_settings.triggers_table_name,
        state_table_name=app_settings.trigger_state_table_name,
        events_table_name=app_settings.trigger_events_table_name,
        region_name=app_settings.aws_region
    )
    metrics_client = (
        MetricsClient(namespace=app_settings.metrics_namespace, region_name=app_settings.aws_region)
        if app_settings.metrics_enabled else None
    )
    return TriggerProcessor(
        repository=repository,
        connections=DynamoDBConnectionProvider(
            app_settings.connections_table_name,
            region_name=app_settings.aws_region
        ),
        delivery_client=WebhookDeliveryClient(
            timeout_seconds=app_settings.webhook_timeout,
            product_name=app_settings.product_name
        ),
        handlers=SourceHandlers(timeout_seconds=app_settings.source_fetch_timeout),
        metrics_client=metrics_client,
        batch_size=app_settings.batch_size,
        poll_interval=timedelta(seconds=app_settings.poll_interval_seconds),
        stale_pending_after=timedelta(seconds=app_settings.stale_pending_seconds),
        retention=timedelta(days=app_settings.event_retention_days)
    )
