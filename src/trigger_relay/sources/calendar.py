"""
Module: calendar.py
Description: Calendar-event source handler.

Fetches events modified since the cursor (a superset of the events
created since then) and keeps exactly those whose creation time is
strictly after the cursor. The cursor advances to the poll start on
every poll. Cancelled events are never fired, and the fetch bound
never reaches further back than MAX_UPDATED_MIN_AGE.
"""

from datetime import datetime, timedelta
from typing import Any, Dict
from urllib.parse import quote

from trigger_relay.models.source import CalendarEventConfig
from trigger_relay.models.state import CalendarCursor, TriggerState
from trigger_relay.sources.base import PollResult, SourceHandler, format_rfc3339, parse_timestamp
from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)

PAGE_SIZE = 250
MAX_UPDATED_MIN_AGE = timedelta(days=20)


class CalendarEventHandler(SourceHandler):
    """Emit one 'new-event' event per calendar event created since the last poll."""

    source_name = "Google Calendar"
    base_url = "https://www.googleapis.com/calendar/v3"

    def cursor_for(self, config: CalendarEventConfig) -> CalendarCursor:
        return CalendarCursor(calendar_id=config.calendar_id)

    async def _poll(
        self,
        config: CalendarEventConfig,
        state: TriggerState,
        access_token: str,
        now: datetime
    ) -> PollResult:
        since = self._timestamp_cursor(state, now)
        # The API rejects an updatedMin too far in the past (HTTP 410)
        fetch_since = max(since, now - MAX_UPDATED_MIN_AGE)
        if fetch_since > since:
            logger.warning(
                "Calendar cursor older than the fetch window, clamping",
                calendar_id=config.calendar_id,
                cursor=since.isoformat(),
                fetch_since=fetch_since.isoformat()
            )

        items = await self._get_items(
            f"{self.base_url}/calendars/{quote(config.calendar_id, safe='')}/events",
            access_token,
            items_key='items',
            params={
                'updatedMin': format_rfc3339(fetch_since),
                'singleEvents': 'true',
                'showDeleted': 'false',
                'maxResults': PAGE_SIZE,
            }
        )

        created = []
        for item in items:
            # Deleted events come back whenever updatedMin is set
            if item.get('status') == 'cancelled':
                continue
            created_at = parse_timestamp(item.get('created'))
            if created_at is not None and created_at > since:
                created.append((created_at, item))
        created.sort(key=lambda pair: pair[0])

        events = [self._calendar_event(config, item) for _, item in created]
        new_state = state.model_copy(update={
            'last_timestamp': now,
            'last_item_id': events[-1]['eventId'] if events else state.last_item_id,
            'state_data': self.cursor_for(config),
        })
        return PollResult(events=events, new_state=new_state)

    @staticmethod
    def _calendar_event(config: CalendarEventConfig, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'type': 'new-event',
            'eventId': item.get('id'),
            'summary': item.get('summary'),
            'description': item.get('description'),
            'start': item.get('start'),
            'end': item.get('end'),
            'attendees': item.get('attendees'),
            'htmlLink': item.get('htmlLink'),
            'created': item.get('created'),
            'calendarId': config.calendar_id,
        }
