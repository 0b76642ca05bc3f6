"""
Module: conftest.py
Description: Shared pytest fixtures for Trigger Relay tests.

Provides a controllable clock, moto-backed DynamoDB tables with the
production schema, a repository over them and factories for triggers
and events. Uses moto for AWS service mocking to keep unit tests fast
and isolated.
"""

from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from trigger_relay.models.event import TriggerEvent
from trigger_relay.models.trigger import Trigger, TriggerCreate
from trigger_relay.storage.dynamodb import DynamoDBTriggerRepository
from trigger_relay.storage.schema import create_tables, table_definitions

REGION = 'us-east-1'
TRIGGERS_TABLE = 'test-triggers'
STATE_TABLE = 'test-trigger-state'
EVENTS_TABLE = 'test-trigger-events'
CONNECTIONS_TABLE = 'test-connections'

WEBHOOK_URL = 'https://hooks.example.com/endpoint'
ACCESS_TOKEN = 'token-abc'


class FakeClock:
    """Callable clock the tests move forward explicitly."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches real AWS."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', REGION)


@pytest.fixture
def dynamodb(aws_credentials):
    """
    Mocked DynamoDB with every table the service uses.

    Tables are created from the shared schema so the indexes the
    repository queries exist exactly as in production.
    """
    with mock_aws():
        resource = boto3.resource('dynamodb', region_name=REGION)
        create_tables(
            resource,
            table_definitions(TRIGGERS_TABLE, STATE_TABLE, EVENTS_TABLE, CONNECTIONS_TABLE)
        )
        yield resource


@pytest.fixture
def repository(dynamodb):
    return DynamoDBTriggerRepository(
        triggers_table_name=TRIGGERS_TABLE,
        state_table_name=STATE_TABLE,
        events_table_name=EVENTS_TABLE,
        region_name=REGION
    )


@pytest.fixture
def connections_table(dynamodb):
    table = dynamodb.Table(CONNECTIONS_TABLE)
    table.put_item(Item={'connection_id': 'conn-1', 'access_token': ACCESS_TOKEN})
    return table


@pytest.fixture
def trigger_create():
    """Factory for TriggerCreate inputs watching a spreadsheet."""

    def _make(**overrides) -> TriggerCreate:
        data = {
            'user_id': 'user-1',
            'workspace_id': 'ws-1',
            'project_id': 'proj-1',
            'connection_id': 'conn-1',
            'integration_id': 'google-sheets',
            'name': 'New signups',
            'trigger_type': 'new-sheet-row',
            'config': {'spreadsheet_id': 'sheet-1', 'sheet_name': 'Sheet1'},
            'webhook_url': WEBHOOK_URL,
            'webhook_headers': {'X-Api-Key': 'secret'},
        }
        data.update(overrides)
        return TriggerCreate(**data)

    return _make


@pytest.fixture
def make_trigger():
    """Factory for stored-looking Trigger models, without storage."""

    def _make(**overrides) -> Trigger:
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        data = {
            'trigger_id': 'trg-1',
            'user_id': 'user-1',
            'workspace_id': 'ws-1',
            'project_id': 'proj-1',
            'connection_id': 'conn-1',
            'integration_id': 'google-sheets',
            'name': 'New signups',
            'trigger_type': 'new-sheet-row',
            'config': {'spreadsheet_id': 'sheet-1', 'sheet_name': 'Sheet1'},
            'webhook_url': WEBHOOK_URL,
            'created_at': now,
            'updated_at': now,
        }
        data.update(overrides)
        return Trigger(**data)

    return _make


@pytest.fixture
def make_event():
    """Factory for pending TriggerEvent models."""

    def _make(**overrides) -> TriggerEvent:
        data = {
            'event_id': 'evt-1',
            'trigger_id': 'trg-1',
            'event_type': 'new-sheet-row',
            'event_data': {'type': 'new-row', 'rowNumber': 1},
            'webhook_url': WEBHOOK_URL,
            'webhook_payload': {'id': 'evt-1', 'event': {'type': 'new-row'}},
            'created_at': datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc),
        }
        data.update(overrides)
        return TriggerEvent(**data)

    return _make
