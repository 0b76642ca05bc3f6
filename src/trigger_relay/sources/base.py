"""
Module: base.py
Description: Common machinery for source handlers.

Every source handler follows the same append-diff shape: fetch the
current collection from the source (bounded page size), compare it
against the stored cursor, emit only the delta and return the advanced
cursor. Handlers never persist anything themselves; the trigger
processor writes the returned state atomically.

Key Components:
- SourceHandler: Base class with the poll template and HTTP helpers
- PollResult: Detected events plus the cursor to store

Dependencies: httpx, pydantic, datetime, typing
Author: Trigger Relay Team
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from trigger_relay.exceptions import SourceFetchError
from trigger_relay.models.state import TriggerState
from trigger_relay.utils.filters import apply_filters_to_events
from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)

# Lookback used when a time-based cursor has never been stored
DEFAULT_LOOKBACK = timedelta(hours=24)

MAX_PAGES = 5


class PollResult(BaseModel):
    """
    Result of polling one source.

    Attributes:
        events: Raw domain events in the source's natural order
        new_state: Cursor to store, or None to leave the stored one as is
    """

    events: List[Dict[str, Any]] = Field(default_factory=list)
    new_state: Optional[TriggerState] = None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp from a source API, assuming UTC when naive."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        logger.warning("Unparseable source timestamp", value=value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_rfc3339(value: datetime) -> str:
    """Format a timestamp the way Google APIs expect in query parameters."""
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class SourceHandler:
    """
    Base class for source handlers.

    Subclasses implement cursor_for() and _poll(). check_for_events()
    takes care of reconfiguration detection and field filters.
    """

    source_name = "Source"

    def __init__(self, timeout_seconds: int = 30):
        """
        Initialize the handler.

        Args:
            timeout_seconds: HTTP timeout for source API calls
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)

    def cursor_for(self, config):
        """Source bookkeeping identifying which source a cursor belongs to."""
        raise NotImplementedError

    async def _poll(self, config, state: TriggerState, access_token: str, now: datetime) -> PollResult:
        raise NotImplementedError

    async def check_for_events(
        self,
        config,
        state: TriggerState,
        access_token: str,
        now: Optional[datetime] = None
    ) -> PollResult:
        """
        Poll the source and diff against the stored cursor.

        Args:
            config: Typed source configuration
            state: Stored cursor (a fresh TriggerState when none exists)
            access_token: Bearer credential for the source API
            now: Poll start time; time-based cursors advance to it

        Returns:
            PollResult with the new events and the cursor to store

        Raises:
            SourceFetchError: If the source API call fails
        """
        now = now or datetime.now(timezone.utc)
        state = self._current_cursor(config, state)

        result = await self._poll(config, state, access_token, now)

        if config.filters:
            result.events = apply_filters_to_events(result.events, config.filters)

        logger.info(
            "Source polled",
            source=self.source_name,
            trigger_id=state.trigger_id,
            events_found=len(result.events),
            state_changed=result.new_state is not None
        )
        return result

    def _current_cursor(self, config, state: TriggerState) -> TriggerState:
        """Discard a cursor recorded for a different source configuration."""
        cursor = self.cursor_for(config)
        if state.state_data is not None and state.state_data != cursor:
            logger.info(
                "Trigger source reconfigured, starting from a fresh cursor",
                trigger_id=state.trigger_id,
                previous=state.state_data.model_dump(),
                current=cursor.model_dump()
            )
            return TriggerState(trigger_id=state.trigger_id, version=state.version)
        return state

    @staticmethod
    def _timestamp_cursor(state: TriggerState, now: datetime) -> datetime:
        return state.last_timestamp or (now - DEFAULT_LOOKBACK)

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        access_token: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """GET a JSON document from the source API."""
        try:
            response = await client.get(
                url,
                params=params,
                headers={
                    'Authorization': f'Bearer {access_token}',
                    'Accept': 'application/json'
                }
            )
        except httpx.TimeoutException as e:
            raise SourceFetchError(f"{self.source_name} API timeout") from e
        except httpx.HTTPError as e:
            raise SourceFetchError(f"{self.source_name} API request failed: {e}") from e

        if response.is_error:
            logger.warning(
                "Source API returned an error",
                source=self.source_name,
                status_code=response.status_code,
                response=response.text[:500]  # Truncate large responses
            )
            raise SourceFetchError(
                f"{self.source_name} API error: {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SourceFetchError(f"{self.source_name} API returned invalid JSON") from e
        if not isinstance(data, dict):
            raise SourceFetchError(f"{self.source_name} API returned an unexpected payload")
        return data

    async def _get_items(
        self,
        url: str,
        access_token: str,
        items_key: str,
        params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Collect items across result pages, up to MAX_PAGES."""
        params = dict(params or {})
        items: List[Dict[str, Any]] = []

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for _ in range(MAX_PAGES):
                data = await self._get_json(client, url, access_token, params)
                items.extend(data.get(items_key) or [])
                page_token = data.get('nextPageToken')
                if not page_token:
                    break
                params['pageToken'] = page_token
            else:
                logger.warning(
                    "Source result truncated at page limit",
                    source=self.source_name,
                    max_pages=MAX_PAGES,
                    items=len(items)
                )

        return items
