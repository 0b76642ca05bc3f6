"""
Module: test_api.py
Description: Integration tests for the Trigger Relay HTTP surface.

Tests the health, cron sweep and per-trigger endpoints with FastAPI's
TestClient against moto-mocked DynamoDB.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from trigger_relay.config import settings
from trigger_relay.connections import DynamoDBConnectionProvider
from trigger_relay.handlers.cron import get_processor
from trigger_relay.handlers.triggers import get_repository
from trigger_relay.main import app
from trigger_relay.models.event import EventStatus
from trigger_relay.processor.service import TriggerProcessor


@pytest.fixture
def test_client(repository, connections_table, clock):
    processor = TriggerProcessor(
        repository=repository,
        connections=DynamoDBConnectionProvider('test-connections', region_name='us-east-1'),
        clock=clock
    )
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_processor] = lambda: processor

    yield TestClient(app)

    app.dependency_overrides.clear()


class TestHealth:

    def test_health_endpoint(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == settings.app_version


class TestCronEndpoint:
    """Test cases for GET /cron/process-triggers."""

    def test_runs_sweep_without_secret_configured(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, 'cron_secret', None)

        response = test_client.get("/cron/process-triggers")

        assert response.status_code == 200
        data = response.json()
        assert data["triggers_processed"] == 0
        assert data["events_retried"] == 0
        assert data["errors"] == []

    def test_missing_secret_rejected(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, 'cron_secret', 's3cret')

        response = test_client.get("/cron/process-triggers")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Unauthorized"

    def test_wrong_secret_rejected(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, 'cron_secret', 's3cret')

        response = test_client.get("/cron/process-triggers", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    def test_correct_secret_accepted(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, 'cron_secret', 's3cret')

        response = test_client.get("/cron/process-triggers", headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == 200

    def test_sweep_processes_due_trigger(self, test_client, repository, trigger_create, monkeypatch):
        monkeypatch.setattr(settings, 'cron_secret', None)
        trigger = asyncio.run(repository.create_trigger(trigger_create(trigger_type='new-email')))

        response = test_client.get("/cron/process-triggers")

        assert response.status_code == 200
        assert response.json()["triggers_processed"] == 1
        assert response.json()["triggers_failed"] == 1
        stored = asyncio.run(repository.get_trigger(trigger.trigger_id))
        assert stored.error_count == 1


class TestTriggerEndpoints:
    """Test cases for per-trigger stats and events."""

    @pytest.fixture
    def seeded_trigger(self, repository, trigger_create, make_event):
        async def seed():
            trigger = await repository.create_trigger(trigger_create())
            created = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
            await repository.create_event(make_event(
                event_id='evt-delivered', trigger_id=trigger.trigger_id,
                status=EventStatus.DELIVERED, attempt_count=1,
                created_at=created, delivered_at=created + timedelta(milliseconds=120)
            ))
            await repository.create_event(make_event(
                event_id='evt-retrying', trigger_id=trigger.trigger_id,
                status=EventStatus.RETRYING, attempt_count=1,
                created_at=created + timedelta(seconds=5)
            ))
            return trigger

        return asyncio.run(seed())

    def test_stats(self, test_client, seeded_trigger):
        response = test_client.get(f"/triggers/{seeded_trigger.trigger_id}/stats")

        assert response.status_code == 200
        assert response.json() == {
            "total_events": 2,
            "delivered_events": 1,
            "failed_events": 0,
            "pending_events": 1,
            "avg_delivery_time_ms": pytest.approx(120.0),
        }

    def test_events_most_recent_first(self, test_client, seeded_trigger):
        response = test_client.get(f"/triggers/{seeded_trigger.trigger_id}/events", params={"limit": 10})

        assert response.status_code == 200
        assert [e["event_id"] for e in response.json()] == ['evt-retrying', 'evt-delivered']

    def test_events_limit_validated(self, test_client, seeded_trigger):
        response = test_client.get(f"/triggers/{seeded_trigger.trigger_id}/events", params={"limit": 500})

        assert response.status_code == 422

    def test_unknown_trigger(self, test_client):
        response = test_client.get("/triggers/missing/stats")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == 404
