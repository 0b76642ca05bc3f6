"""
Module: sheets.py
Description: Spreadsheet-row source handler.

Detects rows appended to a sheet. The cursor is the row count seen on
the last poll; row 0 is the header and names the columns of every
emitted row.
"""

from datetime import datetime
from typing import Any, Dict, List
from urllib.parse import quote

import httpx

from trigger_relay.models.source import SheetRowConfig
from trigger_relay.models.state import SheetCursor, TriggerState
from trigger_relay.sources.base import PollResult, SourceHandler


class SheetRowHandler(SourceHandler):
    """Emit one 'new-row' event per row appended since the last poll."""

    source_name = "Google Sheets"
    base_url = "https://sheets.googleapis.com/v4"

    def cursor_for(self, config: SheetRowConfig) -> SheetCursor:
        return SheetCursor(spreadsheet_id=config.spreadsheet_id, sheet_name=config.sheet_name)

    async def _poll(
        self,
        config: SheetRowConfig,
        state: TriggerState,
        access_token: str,
        now: datetime
    ) -> PollResult:
        url = (
            f"{self.base_url}/spreadsheets/{quote(config.spreadsheet_id, safe='')}"
            f"/values/{quote(config.sheet_name, safe='')}"
        )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            data = await self._get_json(client, url, access_token)

        values: List[List[Any]] = data.get('values') or []
        current_row_count = len(values)
        last_row_count = state.last_row_count

        if last_row_count is not None and current_row_count <= last_row_count:
            # Nothing appended; the stored cursor is already correct
            return PollResult()

        new_state = state.model_copy(update={
            'last_row_count': current_row_count,
            'last_timestamp': now,
            'state_data': self.cursor_for(config),
        })

        headers = [str(h) for h in values[0]] if values else []
        start = max(last_row_count or 0, 1)
        events = [
            self._row_event(config, headers, values[index], index)
            for index in range(start, current_row_count)
        ]
        return PollResult(events=events, new_state=new_state)

    @staticmethod
    def _row_event(
        config: SheetRowConfig,
        headers: List[str],
        raw_values: List[Any],
        row_number: int
    ) -> Dict[str, Any]:
        row = {
            header: raw_values[idx] if idx < len(raw_values) else ''
            for idx, header in enumerate(headers)
        }
        return {
            'type': 'new-row',
            'rowNumber': row_number,
            'row': row,
            'rawValues': raw_values,
            'spreadsheetId': config.spreadsheet_id,
            'sheetName': config.sheet_name,
        }
