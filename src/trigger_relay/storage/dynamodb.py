"""
Module: dynamodb.py
Description: DynamoDB-backed trigger repository.

Persists triggers, per-trigger cursors and trigger events, and answers
the scheduling queries of the trigger processor (due triggers, events
due for retry, stale pending events) plus retention cleanup and
per-trigger statistics.

Key Components:
- DynamoDBTriggerRepository: Repository over the three tables
- Conditional writes: due-trigger claims, versioned cursor writes and
  attempt-count guarded event updates
- Serialization: JSON fields stored as strings, timestamps stored as
  fixed-width UTC ISO strings so they sort lexically
- Throttling retries via tenacity

Dependencies: boto3, botocore, tenacity, datetime, typing
Author: Trigger Relay Team
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

import boto3
from botocore.exceptions import ClientError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from trigger_relay.exceptions import (
    EventConflictError,
    StateConflictError,
    TriggerNotFoundError,
)
from trigger_relay.models.event import EventStatus, TriggerEvent, TriggerStats, WebhookResponse
from trigger_relay.models.state import TriggerState
from trigger_relay.models.trigger import Trigger, TriggerCreate, TriggerUpdate
from trigger_relay.storage.schema import STATUS_INDEX, TRIGGER_INDEX
from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

TRIGGER_JSON_FIELDS = ('config', 'webhook_headers')
STATE_JSON_FIELDS = ('state_data',)
EVENT_JSON_FIELDS = ('event_data', 'webhook_headers', 'webhook_payload', 'webhook_response')

THROTTLING_ERROR_CODES = {
    'ProvisionedThroughputExceededException',
    'ThrottlingException',
    'RequestLimitExceeded',
}


def format_timestamp(value: datetime) -> str:
    """Fixed-width UTC representation; lexical order equals time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _is_throttling(exc: BaseException) -> bool:
    return (
        isinstance(exc, ClientError)
        and exc.response.get('Error', {}).get('Code') in THROTTLING_ERROR_CODES
    )


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'


def _is_validation_failure(exc: ClientError) -> bool:
    return exc.response.get('Error', {}).get('Code') == 'ValidationException'


def _error_fields(exc: ClientError) -> Dict[str, str]:
    error = exc.response.get('Error', {})
    return {'error_code': error.get('Code'), 'error_message': error.get('Message')}


def _log_throttle_retry(retry_state) -> None:
    logger.warning(
        "DynamoDB request throttled, retrying",
        attempt=retry_state.attempt_number,
        operation=retry_state.fn.__name__ if retry_state.fn else None
    )


# Retry DynamoDB calls that were throttled; everything else propagates
throttle_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    retry=retry_if_exception(_is_throttling),
    before_sleep=_log_throttle_retry,
    reraise=True
)


def _to_item(model, json_fields: Iterable[str]) -> Dict[str, Any]:
    """Convert a model to a DynamoDB item, dropping None values."""
    item = {}
    for key, value in model.model_dump().items():
        if value is None:
            continue
        if key in json_fields:
            value = json.dumps(value, default=str)
        elif isinstance(value, datetime):
            value = format_timestamp(value)
        elif isinstance(value, Enum):
            value = value.value
        item[key] = value
    return item


def _from_item(item: Dict[str, Any], json_fields: Iterable[str]) -> Dict[str, Any]:
    """Decode the JSON-string attributes of a DynamoDB item."""
    data = dict(item)
    for key in json_fields:
        if isinstance(data.get(key), str):
            data[key] = json.loads(data[key])
    return data


class DynamoDBTriggerRepository:
    """
    Trigger repository over DynamoDB.

    Attributes:
        triggers: Triggers table (hash key trigger_id)
        states: Cursor table (hash key trigger_id)
        events: Events table (hash key event_id, StatusIndex and
            TriggerIndex GSIs ranged on created_at)

    Example:
        >>> repo = DynamoDBTriggerRepository("triggers", "trigger-state", "trigger-events")
        >>> trigger = await repo.create_trigger(TriggerCreate(...))
        >>> due = await repo.find_triggers_due_for_check(cutoff)
    """

    def __init__(
        self,
        triggers_table_name: str,
        state_table_name: str,
        events_table_name: str,
        region_name: Optional[str] = None
    ):
        """
        Initialize the repository.

        Raises:
            ValueError: If any table name is empty or invalid
        """
        for table_name in (triggers_table_name, state_table_name, events_table_name):
            if not table_name or not isinstance(table_name, str):
                raise ValueError("table_name must be a non-empty string")

        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.triggers = self.dynamodb.Table(triggers_table_name)
        self.states = self.dynamodb.Table(state_table_name)
        self.events = self.dynamodb.Table(events_table_name)

        logger.info(
            "Trigger repository initialized",
            triggers_table=triggers_table_name,
            state_table=state_table_name,
            events_table=events_table_name
        )

    # ========== Triggers ==========

    @throttle_retry
    async def create_trigger(self, data: TriggerCreate) -> Trigger:
        """
        Create and store a new trigger.

        Args:
            data: Trigger creation input

        Returns:
            The stored trigger
        """
        now = datetime.now(timezone.utc)
        trigger = Trigger(
            trigger_id=str(uuid4()),
            created_at=now,
            updated_at=now,
            **data.model_dump()
        )

        try:
            self.triggers.put_item(
                Item=_to_item(trigger, TRIGGER_JSON_FIELDS),
                ConditionExpression='attribute_not_exists(trigger_id)'
            )
        except ClientError as e:
            logger.error("Failed to store trigger", trigger_id=trigger.trigger_id, **_error_fields(e))
            raise

        logger.info(
            "Trigger created",
            trigger_id=trigger.trigger_id,
            trigger_type=trigger.trigger_type,
            workspace_id=trigger.workspace_id
        )
        return trigger

    @throttle_retry
    async def get_trigger(self, trigger_id: str) -> Optional[Trigger]:
        """
        Retrieve a trigger by ID.

        Returns:
            Trigger if found, None otherwise
        """
        if not trigger_id or not isinstance(trigger_id, str):
            raise ValueError("trigger_id must be a non-empty string")

        try:
            response = self.triggers.get_item(Key={'trigger_id': trigger_id})
        except ClientError as e:
            logger.error("Failed to retrieve trigger", trigger_id=trigger_id, **_error_fields(e))
            raise

        if 'Item' not in response:
            return None
        return Trigger(**_from_item(response['Item'], TRIGGER_JSON_FIELDS))

    @throttle_retry
    async def update_trigger(self, trigger_id: str, changes: TriggerUpdate) -> Trigger:
        """
        Apply a partial update to a trigger.

        Changing trigger_type or config discards the stored cursor.

        Raises:
            TriggerNotFoundError: If the trigger does not exist
        """
        fields = changes.changes()
        fields['updated_at'] = datetime.now(timezone.utc)

        names = {}
        values = {}
        assignments = []
        for index, (key, value) in enumerate(fields.items()):
            if key in TRIGGER_JSON_FIELDS:
                value = json.dumps(value, default=str)
            elif isinstance(value, datetime):
                value = format_timestamp(value)
            names[f'#f{index}'] = key
            values[f':v{index}'] = value
            assignments.append(f'#f{index} = :v{index}')

        try:
            response = self.triggers.update_item(
                Key={'trigger_id': trigger_id},
                UpdateExpression='SET ' + ', '.join(assignments),
                ConditionExpression='attribute_exists(trigger_id)',
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues='ALL_NEW'
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise TriggerNotFoundError(f"Trigger {trigger_id} not found") from e
            logger.error("Failed to update trigger", trigger_id=trigger_id, **_error_fields(e))
            raise

        if changes.is_reconfiguration:
            self.states.delete_item(Key={'trigger_id': trigger_id})
            logger.info("Trigger reconfigured, cursor discarded", trigger_id=trigger_id)

        return Trigger(**_from_item(response['Attributes'], TRIGGER_JSON_FIELDS))

    async def delete_trigger(self, trigger_id: str) -> int:
        """
        Delete a trigger together with its cursor and events.

        Returns:
            Number of events deleted
        """
        event_keys = [
            {'event_id': item['event_id']}
            for item in self._query_all(
                self.events,
                IndexName=TRIGGER_INDEX,
                KeyConditionExpression='trigger_id = :trigger_id',
                ExpressionAttributeValues={':trigger_id': trigger_id},
                ProjectionExpression='event_id'
            )
        ]

        try:
            self._batch_delete(self.events, event_keys)
            self.states.delete_item(Key={'trigger_id': trigger_id})
            self.triggers.delete_item(Key={'trigger_id': trigger_id})
        except ClientError as e:
            logger.error("Failed to delete trigger", trigger_id=trigger_id, **_error_fields(e))
            raise

        logger.info("Trigger deleted", trigger_id=trigger_id, events_deleted=len(event_keys))
        return len(event_keys)

    async def find_active_triggers(self) -> List[Trigger]:
        """All active triggers, least recently checked first."""
        return self._scan_triggers(
            FilterExpression='is_active = :active',
            ExpressionAttributeValues={':active': True}
        )

    async def find_triggers_due_for_check(self, before: datetime) -> List[Trigger]:
        """
        Active triggers never checked or last checked before the cutoff.

        Args:
            before: Polling cutoff (now minus the polling interval)

        Returns:
            Due triggers, least recently checked first
        """
        return self._scan_triggers(
            FilterExpression=(
                'is_active = :active AND '
                '(attribute_not_exists(last_checked_at) OR last_checked_at < :before)'
            ),
            ExpressionAttributeValues={':active': True, ':before': format_timestamp(before)}
        )

    @throttle_retry
    async def claim_trigger(self, trigger_id: str, now: datetime, before: datetime) -> bool:
        """
        Stamp last_checked_at only if the trigger is still due.

        Overlapping sweeps race on this conditional write; exactly one of
        them wins the trigger for this polling interval.

        Returns:
            True if this caller claimed the trigger
        """
        try:
            self.triggers.update_item(
                Key={'trigger_id': trigger_id},
                UpdateExpression='SET last_checked_at = :now, updated_at = :now',
                ConditionExpression=(
                    'is_active = :active AND '
                    '(attribute_not_exists(last_checked_at) OR last_checked_at < :before)'
                ),
                ExpressionAttributeValues={
                    ':now': format_timestamp(now),
                    ':before': format_timestamp(before),
                    ':active': True
                }
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                logger.info("Trigger already claimed or no longer due", trigger_id=trigger_id)
                return False
            logger.error("Failed to claim trigger", trigger_id=trigger_id, **_error_fields(e))
            raise
        return True

    @throttle_retry
    async def update_last_checked(self, trigger_id: str, timestamp: datetime) -> None:
        """Unconditionally stamp last_checked_at."""
        try:
            self.triggers.update_item(
                Key={'trigger_id': trigger_id},
                UpdateExpression='SET last_checked_at = :ts, updated_at = :ts',
                ConditionExpression='attribute_exists(trigger_id)',
                ExpressionAttributeValues={':ts': format_timestamp(timestamp)}
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise TriggerNotFoundError(f"Trigger {trigger_id} not found") from e
            logger.error("Failed to update last_checked_at", trigger_id=trigger_id, **_error_fields(e))
            raise

    @throttle_retry
    async def save_health(self, trigger: Trigger) -> None:
        """
        Persist the health fields of a trigger in a single write.

        Writes last_checked_at, last_triggered_at, error_count and
        last_error as computed by the health transition. is_active is only
        ever written to deactivate, so a pause or resume made by the owner
        while the poll ran is not overwritten.

        Raises:
            TriggerNotFoundError: If the trigger was deleted meanwhile
        """
        now = datetime.now(timezone.utc)
        sets = ['error_count = :error_count', 'updated_at = :now']
        removes = []
        values: Dict[str, Any] = {
            ':error_count': trigger.error_count,
            ':now': format_timestamp(now),
        }

        if not trigger.is_active:
            sets.append('is_active = :is_active')
            values[':is_active'] = False

        if trigger.last_checked_at is not None:
            sets.append('last_checked_at = :last_checked_at')
            values[':last_checked_at'] = format_timestamp(trigger.last_checked_at)
        if trigger.last_triggered_at is not None:
            sets.append('last_triggered_at = :last_triggered_at')
            values[':last_triggered_at'] = format_timestamp(trigger.last_triggered_at)
        if trigger.last_error is not None:
            sets.append('last_error = :last_error')
            values[':last_error'] = trigger.last_error
        else:
            removes.append('last_error')

        expression = 'SET ' + ', '.join(sets)
        if removes:
            expression += ' REMOVE ' + ', '.join(removes)

        try:
            self.triggers.update_item(
                Key={'trigger_id': trigger.trigger_id},
                UpdateExpression=expression,
                ConditionExpression='attribute_exists(trigger_id)',
                ExpressionAttributeValues=values
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise TriggerNotFoundError(f"Trigger {trigger.trigger_id} not found") from e
            logger.error("Failed to save trigger health", trigger_id=trigger.trigger_id, **_error_fields(e))
            raise

    @throttle_retry
    async def reactivate_trigger(self, trigger_id: str) -> Trigger:
        """
        Re-enable a trigger and clear its error history.

        Raises:
            TriggerNotFoundError: If the trigger does not exist
        """
        try:
            response = self.triggers.update_item(
                Key={'trigger_id': trigger_id},
                UpdateExpression='SET is_active = :active, error_count = :zero, updated_at = :now REMOVE last_error',
                ConditionExpression='attribute_exists(trigger_id)',
                ExpressionAttributeValues={
                    ':active': True,
                    ':zero': 0,
                    ':now': format_timestamp(datetime.now(timezone.utc))
                },
                ReturnValues='ALL_NEW'
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise TriggerNotFoundError(f"Trigger {trigger_id} not found") from e
            logger.error("Failed to reactivate trigger", trigger_id=trigger_id, **_error_fields(e))
            raise

        logger.info("Trigger reactivated", trigger_id=trigger_id)
        return Trigger(**_from_item(response['Attributes'], TRIGGER_JSON_FIELDS))

    # ========== Trigger state ==========

    @throttle_retry
    async def get_state(self, trigger_id: str) -> Optional[TriggerState]:
        """Retrieve the stored cursor of a trigger, if any."""
        try:
            response = self.states.get_item(Key={'trigger_id': trigger_id}, ConsistentRead=True)
        except ClientError as e:
            logger.error("Failed to retrieve trigger state", trigger_id=trigger_id, **_error_fields(e))
            raise

        if 'Item' not in response:
            return None
        return TriggerState(**_from_item(response['Item'], STATE_JSON_FIELDS))

    @throttle_retry
    async def set_state(self, state: TriggerState) -> TriggerState:
        """
        Overwrite a trigger's cursor if nobody else wrote it since it was read.

        Args:
            state: New cursor carrying the version it was derived from

        Returns:
            The stored cursor with its new version

        Raises:
            StateConflictError: If the stored version moved on
        """
        stored = state.model_copy(update={
            'version': state.version + 1,
            'updated_at': datetime.now(timezone.utc)
        })

        if state.version == 0:
            condition = {'ConditionExpression': 'attribute_not_exists(trigger_id)'}
        else:
            condition = {
                'ConditionExpression': '#version = :expected',
                'ExpressionAttributeNames': {'#version': 'version'},
                'ExpressionAttributeValues': {':expected': state.version}
            }

        try:
            self.states.put_item(Item=_to_item(stored, STATE_JSON_FIELDS), **condition)
        except ClientError as e:
            if _is_conditional_failure(e):
                raise StateConflictError(
                    f"Cursor for trigger {state.trigger_id} changed concurrently"
                ) from e
            logger.error("Failed to store trigger state", trigger_id=state.trigger_id, **_error_fields(e))
            raise

        logger.debug(
            "Trigger state stored",
            trigger_id=state.trigger_id,
            version=stored.version,
            last_row_count=stored.last_row_count
        )
        return stored

    # ========== Events ==========

    @throttle_retry
    async def create_event(self, event: TriggerEvent) -> TriggerEvent:
        """Store a newly fired event."""
        if not isinstance(event, TriggerEvent):
            raise ValueError("event must be a TriggerEvent instance")

        try:
            self.events.put_item(
                Item=_to_item(event, EVENT_JSON_FIELDS),
                ConditionExpression='attribute_not_exists(event_id)'
            )
        except ClientError as e:
            logger.error(
                "Failed to store trigger event",
                event_id=event.event_id,
                trigger_id=event.trigger_id,
                **_error_fields(e)
            )
            raise

        logger.info(
            "Trigger event stored",
            event_id=event.event_id,
            trigger_id=event.trigger_id,
            event_type=event.event_type
        )
        return event

    @throttle_retry
    async def get_event(self, event_id: str) -> Optional[TriggerEvent]:
        """Retrieve an event by ID."""
        if not event_id or not isinstance(event_id, str):
            raise ValueError("event_id must be a non-empty string")

        try:
            response = self.events.get_item(Key={'event_id': event_id})
        except ClientError as e:
            logger.error("Failed to retrieve trigger event", event_id=event_id, **_error_fields(e))
            raise

        if 'Item' not in response:
            return None
        return TriggerEvent(**_from_item(response['Item'], EVENT_JSON_FIELDS))

    async def list_events_by_trigger(self, trigger_id: str, limit: int = 50) -> List[TriggerEvent]:
        """Most recent events of a trigger first."""
        if limit <= 0 or limit > 100:
            raise ValueError("limit must be between 1 and 100")

        items = self._query_all(
            self.events,
            limit=limit,
            IndexName=TRIGGER_INDEX,
            KeyConditionExpression='trigger_id = :trigger_id',
            ExpressionAttributeValues={':trigger_id': trigger_id},
            ScanIndexForward=False
        )
        return [TriggerEvent(**_from_item(item, EVENT_JSON_FIELDS)) for item in items]

    @throttle_retry
    async def update_event_delivery(self, event: TriggerEvent, expected_attempt_count: int) -> None:
        """
        Persist an event after a delivery attempt.

        The write only succeeds if the stored event still has the attempt
        count the attempt started from and is not terminal, so two
        concurrent attempts cannot both be recorded.

        An item rejected as too large is written again without the
        captured response body and headers, so the attempt is always
        recorded.

        Raises:
            EventConflictError: If the stored event moved on
        """
        try:
            self._put_event_delivery(event, expected_attempt_count)
        except ClientError as e:
            if not _is_validation_failure(e) or event.webhook_response is None:
                logger.error("Failed to update trigger event", event_id=event.event_id, **_error_fields(e))
                raise

            logger.warning(
                "Trigger event too large, dropping captured response",
                event_id=event.event_id,
                **_error_fields(e)
            )
            event.webhook_response = WebhookResponse(status_code=event.webhook_response.status_code)
            try:
                self._put_event_delivery(event, expected_attempt_count)
            except ClientError as retry_error:
                logger.error(
                    "Failed to update trigger event",
                    event_id=event.event_id,
                    **_error_fields(retry_error)
                )
                raise

    def _put_event_delivery(self, event: TriggerEvent, expected_attempt_count: int) -> None:
        try:
            self.events.put_item(
                Item=_to_item(event, EVENT_JSON_FIELDS),
                ConditionExpression='attempt_count = :expected AND #status IN (:pending, :retrying)',
                ExpressionAttributeNames={'#status': 'status'},
                ExpressionAttributeValues={
                    ':expected': expected_attempt_count,
                    ':pending': EventStatus.PENDING.value,
                    ':retrying': EventStatus.RETRYING.value
                }
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise EventConflictError(
                    f"Event {event.event_id} was updated by another delivery attempt"
                ) from e
            raise

    async def find_events_for_retry(self, now: datetime, limit: int = 50) -> List[TriggerEvent]:
        """Retrying events whose next_retry_at has elapsed, earliest first."""
        items = self._query_all(
            self.events,
            limit=limit,
            IndexName=STATUS_INDEX,
            KeyConditionExpression='#status = :status',
            FilterExpression='next_retry_at <= :now',
            ExpressionAttributeNames={'#status': 'status'},
            ExpressionAttributeValues={
                ':status': EventStatus.RETRYING.value,
                ':now': format_timestamp(now)
            }
        )
        events = [TriggerEvent(**_from_item(item, EVENT_JSON_FIELDS)) for item in items]
        events.sort(key=lambda e: e.next_retry_at)
        return events

    async def find_stale_pending_events(self, created_before: datetime, limit: int = 100) -> List[TriggerEvent]:
        """Pending events created before the cutoff, oldest first."""
        items = self._query_all(
            self.events,
            limit=limit,
            IndexName=STATUS_INDEX,
            KeyConditionExpression='#status = :status AND created_at < :before',
            ExpressionAttributeNames={'#status': 'status'},
            ExpressionAttributeValues={
                ':status': EventStatus.PENDING.value,
                ':before': format_timestamp(created_before)
            },
            ScanIndexForward=True
        )
        return [TriggerEvent(**_from_item(item, EVENT_JSON_FIELDS)) for item in items]

    async def delete_old_events(self, older_than: datetime) -> int:
        """
        Delete delivered and failed events created before the cutoff.

        Returns:
            Number of events deleted
        """
        keys = []
        for status in (EventStatus.DELIVERED, EventStatus.FAILED):
            keys.extend(
                {'event_id': item['event_id']}
                for item in self._query_all(
                    self.events,
                    IndexName=STATUS_INDEX,
                    KeyConditionExpression='#status = :status AND created_at < :before',
                    ExpressionAttributeNames={'#status': 'status'},
                    ExpressionAttributeValues={
                        ':status': status.value,
                        ':before': format_timestamp(older_than)
                    },
                    ProjectionExpression='event_id'
                )
            )

        try:
            self._batch_delete(self.events, keys)
        except ClientError as e:
            logger.error("Failed to delete old trigger events", **_error_fields(e))
            raise

        logger.info("Old trigger events deleted", count=len(keys), older_than=format_timestamp(older_than))
        return len(keys)

    async def get_stats_by_trigger_id(self, trigger_id: str) -> TriggerStats:
        """Event counts by status and average delivery time for a trigger."""
        items = self._query_all(
            self.events,
            IndexName=TRIGGER_INDEX,
            KeyConditionExpression='trigger_id = :trigger_id',
            ExpressionAttributeNames={'#status': 'status'},
            ExpressionAttributeValues={':trigger_id': trigger_id},
            ProjectionExpression='#status, created_at, delivered_at'
        )

        stats = TriggerStats(total_events=len(items))
        delivery_times: List[float] = []
        for item in items:
            status = item.get('status')
            if status == EventStatus.DELIVERED.value:
                stats.delivered_events += 1
                if item.get('delivered_at'):
                    created, delivered = _parse_pair(item['created_at'], item['delivered_at'])
                    delivery_times.append((delivered - created).total_seconds() * 1000)
            elif status == EventStatus.FAILED.value:
                stats.failed_events += 1
            else:
                stats.pending_events += 1

        if delivery_times:
            stats.avg_delivery_time_ms = sum(delivery_times) / len(delivery_times)
        return stats

    # ========== Helpers ==========

    def _scan_triggers(self, **kwargs) -> List[Trigger]:
        triggers = [
            Trigger(**_from_item(item, TRIGGER_JSON_FIELDS))
            for item in self._scan_all(self.triggers, **kwargs)
        ]
        # Never-checked triggers first, then least recently checked
        triggers.sort(key=lambda t: (
            t.last_checked_at is not None,
            t.last_checked_at or datetime.min.replace(tzinfo=timezone.utc)
        ))
        return triggers

    @staticmethod
    def _query_all(table, limit: Optional[int] = None, **kwargs) -> List[Dict[str, Any]]:
        """Run a query across pages, stopping once limit items were collected."""
        items: List[Dict[str, Any]] = []
        while True:
            try:
                response = table.query(**kwargs)
            except ClientError as e:
                logger.error("DynamoDB query failed", table_name=table.name, **_error_fields(e))
                raise
            items.extend(response.get('Items', []))
            if limit is not None and len(items) >= limit:
                return items[:limit]
            if 'LastEvaluatedKey' not in response:
                return items
            kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

    @staticmethod
    def _scan_all(table, **kwargs) -> List[Dict[str, Any]]:
        """Run a scan across all pages."""
        items: List[Dict[str, Any]] = []
        while True:
            try:
                response = table.scan(**kwargs)
            except ClientError as e:
                logger.error("DynamoDB scan failed", table_name=table.name, **_error_fields(e))
                raise
            items.extend(response.get('Items', []))
            if 'LastEvaluatedKey' not in response:
                return items
            kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

    @staticmethod
    def _batch_delete(table, keys: List[Dict[str, Any]]) -> None:
        if not keys:
            return
        with table.batch_writer() as batch:
            for key in keys:
                batch.delete_item(Key=key)


def _parse_pair(first: str, second: str) -> Tuple[datetime, datetime]:
    return (
        datetime.strptime(first, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc),
        datetime.strptime(second, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc),
    )
