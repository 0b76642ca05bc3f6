"""
Module: test_calendar.py
Description: Unit tests for the calendar-event source handler.
"""

import re
from datetime import timedelta

import pytest

from trigger_relay.models.source import CalendarEventConfig
from trigger_relay.models.state import CalendarCursor, TriggerState
from trigger_relay.sources.calendar import CalendarEventHandler

EVENTS_URL = re.compile(r'https://www\.googleapis\.com/calendar/v3/calendars/primary/events\?.*')


@pytest.fixture
def handler():
    return CalendarEventHandler(timeout_seconds=5)


def calendar_item(event_id, created):
    return {
        'id': event_id,
        'summary': f'Meeting {event_id}',
        'start': {'dateTime': '2026-03-03T10:00:00Z'},
        'end': {'dateTime': '2026-03-03T11:00:00Z'},
        'htmlLink': f'https://calendar.example.com/{event_id}',
        'created': created,
    }


class TestCalendarEventHandler:
    """Test cases for calendar event detection."""

    @pytest.mark.asyncio
    async def test_keeps_events_created_after_cursor(self, handler, clock, httpx_mock):
        since = clock() - timedelta(minutes=5)
        httpx_mock.add_response(url=EVENTS_URL, json={'items': [
            calendar_item('late', '2026-03-02T11:58:00.000Z'),
            calendar_item('old', '2026-02-20T09:00:00.000Z'),
            calendar_item('early', '2026-03-02T11:56:00.000Z'),
        ]})
        state = TriggerState(
            trigger_id='trg-1',
            last_timestamp=since,
            state_data=CalendarCursor(calendar_id='primary'),
            version=3
        )

        result = await handler.check_for_events(CalendarEventConfig(), state, 'token-abc', clock())

        assert [e['eventId'] for e in result.events] == ['early', 'late']
        assert result.events[0]['type'] == 'new-event'
        assert result.events[0]['calendarId'] == 'primary'
        assert result.events[0]['attendees'] is None
        assert result.new_state.last_timestamp == clock()
        assert result.new_state.last_item_id == 'late'
        assert result.new_state.version == 3

        params = httpx_mock.get_request().url.params
        assert params['updatedMin'] == '2026-03-02T11:55:00.000Z'
        assert params['singleEvents'] == 'true'
        assert params['showDeleted'] == 'false'
        assert params['maxResults'] == '250'

    @pytest.mark.asyncio
    async def test_first_poll_looks_back_24_hours(self, handler, clock, httpx_mock):
        httpx_mock.add_response(url=EVENTS_URL, json={'items': []})

        result = await handler.check_for_events(
            CalendarEventConfig(), TriggerState(trigger_id='trg-1'), 'token-abc', clock()
        )

        assert result.events == []
        assert result.new_state.last_timestamp == clock()
        assert httpx_mock.get_request().url.params['updatedMin'] == '2026-03-01T12:00:00.000Z'

    @pytest.mark.asyncio
    async def test_follows_pages(self, handler, clock, httpx_mock):
        httpx_mock.add_response(url=EVENTS_URL, json={
            'items': [calendar_item('a', '2026-03-02T11:30:00Z')],
            'nextPageToken': 'page-2'
        })
        httpx_mock.add_response(url=EVENTS_URL, json={
            'items': [calendar_item('b', '2026-03-02T11:40:00Z')]
        })

        result = await handler.check_for_events(
            CalendarEventConfig(), TriggerState(trigger_id='trg-1'), 'token-abc', clock()
        )

        assert [e['eventId'] for e in result.events] == ['a', 'b']
        assert httpx_mock.get_requests()[1].url.params['pageToken'] == 'page-2'

    @pytest.mark.asyncio
    async def test_cancelled_events_skipped(self, handler, clock, httpx_mock):
        httpx_mock.add_response(url=EVENTS_URL, json={'items': [
            {'id': 'gone', 'status': 'cancelled', 'created': '2026-03-02T11:58:00.000Z'},
            calendar_item('kept', '2026-03-02T11:57:00.000Z'),
        ]})
        state = TriggerState(trigger_id='trg-1', last_timestamp=clock() - timedelta(minutes=5))

        result = await handler.check_for_events(CalendarEventConfig(), state, 'token-abc', clock())

        assert [e['eventId'] for e in result.events] == ['kept']
        assert result.new_state.last_item_id == 'kept'

    @pytest.mark.asyncio
    async def test_old_cursor_clamps_fetch_window(self, handler, clock, httpx_mock):
        since = clock() - timedelta(days=60)
        httpx_mock.add_response(url=EVENTS_URL, json={'items': [
            calendar_item('recent', '2026-03-01T09:00:00.000Z'),
        ]})
        state = TriggerState(trigger_id='trg-1', last_timestamp=since)

        result = await handler.check_for_events(CalendarEventConfig(), state, 'token-abc', clock())

        assert httpx_mock.get_request().url.params['updatedMin'] == '2026-02-10T12:00:00.000Z'
        assert [e['eventId'] for e in result.events] == ['recent']
        assert result.new_state.last_timestamp == clock()
