"""
Module: test_sheets.py
Description: Unit tests for the spreadsheet-row source handler.
"""

import pytest

from trigger_relay.exceptions import SourceFetchError
from trigger_relay.models.source import SheetRowConfig
from trigger_relay.models.state import CalendarCursor, SheetCursor, TriggerState
from trigger_relay.sources.sheets import SheetRowHandler
from trigger_relay.utils.filters import FieldFilter

SHEET_URL = 'https://sheets.googleapis.com/v4/spreadsheets/sheet-1/values/Sheet1'
HEADER = ['Name', 'Email']


@pytest.fixture
def handler():
    return SheetRowHandler(timeout_seconds=5)


@pytest.fixture
def config():
    return SheetRowConfig(spreadsheet_id='sheet-1', sheet_name='Sheet1')


def stored(row_count, version=1):
    return TriggerState(
        trigger_id='trg-1',
        last_row_count=row_count,
        state_data=SheetCursor(spreadsheet_id='sheet-1', sheet_name='Sheet1'),
        version=version
    )


class TestSheetRowHandler:
    """Test cases for row diffing."""

    @pytest.mark.asyncio
    async def test_appended_rows(self, handler, config, clock, httpx_mock):
        """Cursor 3 (header + 2 rows), sheet now has 5 rows: rows 3 and 4 fire."""
        httpx_mock.add_response(url=SHEET_URL, json={'values': [
            HEADER, ['Ann', 'ann@x.io'], ['Bob', 'bob@x.io'], ['Cy', 'cy@x.io'], ['Di']
        ]})

        result = await handler.check_for_events(config, stored(3), 'token-abc', clock())

        assert [e['rowNumber'] for e in result.events] == [3, 4]
        assert result.events[0] == {
            'type': 'new-row',
            'rowNumber': 3,
            'row': {'Name': 'Cy', 'Email': 'cy@x.io'},
            'rawValues': ['Cy', 'cy@x.io'],
            'spreadsheetId': 'sheet-1',
            'sheetName': 'Sheet1',
        }
        assert result.events[1]['row'] == {'Name': 'Di', 'Email': ''}
        assert result.new_state.last_row_count == 5
        assert result.new_state.version == 1
        assert result.new_state.last_timestamp == clock()

        request = httpx_mock.get_request()
        assert request.headers['Authorization'] == 'Bearer token-abc'

    @pytest.mark.asyncio
    async def test_unchanged_sheet_leaves_state(self, handler, config, clock, httpx_mock):
        httpx_mock.add_response(url=SHEET_URL, json={'values': [HEADER, ['Ann', 'ann@x.io']]})

        result = await handler.check_for_events(config, stored(2), 'token-abc', clock())

        assert result.events == []
        assert result.new_state is None

    @pytest.mark.asyncio
    async def test_shrunk_sheet_leaves_state(self, handler, config, clock, httpx_mock):
        httpx_mock.add_response(url=SHEET_URL, json={'values': [HEADER]})

        result = await handler.check_for_events(config, stored(4), 'token-abc', clock())

        assert result.events == []
        assert result.new_state is None

    @pytest.mark.asyncio
    async def test_first_poll_emits_existing_rows(self, handler, config, clock, httpx_mock):
        httpx_mock.add_response(url=SHEET_URL, json={'values': [HEADER, ['Ann', 'ann@x.io'], ['Bob', 'bob@x.io']]})

        result = await handler.check_for_events(config, TriggerState(trigger_id='trg-1'), 'token-abc', clock())

        assert [e['rowNumber'] for e in result.events] == [1, 2]
        assert result.new_state.last_row_count == 3
        assert result.new_state.state_data == SheetCursor(spreadsheet_id='sheet-1', sheet_name='Sheet1')

    @pytest.mark.asyncio
    async def test_empty_sheet_writes_baseline(self, handler, config, clock, httpx_mock):
        httpx_mock.add_response(url=SHEET_URL, json={'range': 'Sheet1!A1:Z1000'})

        result = await handler.check_for_events(config, TriggerState(trigger_id='trg-1'), 'token-abc', clock())

        assert result.events == []
        assert result.new_state.last_row_count == 0

    @pytest.mark.asyncio
    async def test_reconfigured_sheet_starts_fresh(self, handler, clock, httpx_mock):
        """A cursor recorded for another sheet is ignored but its version kept."""
        other_url = 'https://sheets.googleapis.com/v4/spreadsheets/sheet-2/values/Leads'
        httpx_mock.add_response(url=other_url, json={'values': [HEADER, ['Ann', 'ann@x.io']]})
        config = SheetRowConfig(spreadsheet_id='sheet-2', sheet_name='Leads')

        result = await handler.check_for_events(config, stored(40, version=7), 'token-abc', clock())

        assert [e['rowNumber'] for e in result.events] == [1]
        assert result.new_state.last_row_count == 2
        assert result.new_state.version == 7
        assert result.new_state.state_data == SheetCursor(spreadsheet_id='sheet-2', sheet_name='Leads')

    @pytest.mark.asyncio
    async def test_cursor_of_other_kind_is_discarded(self, handler, config, clock, httpx_mock):
        httpx_mock.add_response(url=SHEET_URL, json={'values': [HEADER, ['Ann', 'ann@x.io']]})
        state = TriggerState(
            trigger_id='trg-1',
            last_row_count=10,
            state_data=CalendarCursor(calendar_id='primary'),
            version=2
        )

        result = await handler.check_for_events(config, state, 'token-abc', clock())

        assert len(result.events) == 1

    @pytest.mark.asyncio
    async def test_filters_applied_cursor_still_advances(self, handler, clock, httpx_mock):
        httpx_mock.add_response(url=SHEET_URL, json={'values': [
            HEADER, ['Ann', 'ann@corp.io'], ['Bob', 'bob@gmail.com']
        ]})
        config = SheetRowConfig(
            spreadsheet_id='sheet-1',
            sheet_name='Sheet1',
            filters=[FieldFilter(field='row.Email', operator='contains', value='@corp.io')]
        )

        result = await handler.check_for_events(config, stored(1), 'token-abc', clock())

        assert [e['row']['Name'] for e in result.events] == ['Ann']
        assert result.new_state.last_row_count == 3

    @pytest.mark.asyncio
    async def test_api_error_raises(self, handler, config, clock, httpx_mock):
        httpx_mock.add_response(url=SHEET_URL, status_code=403, json={'error': 'forbidden'})

        with pytest.raises(SourceFetchError) as exc_info:
            await handler.check_for_events(config, stored(2), 'token-abc', clock())

        assert exc_info.value.status_code == 403
