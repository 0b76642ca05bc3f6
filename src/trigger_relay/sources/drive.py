"""
Module: drive.py
Description: Drive-file source handler.

Asks the drive API for files created after the cursor, optionally
narrowed to one folder and a MIME-type substring. The cursor advances
to the poll start on every poll.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from trigger_relay.models.source import DriveFileConfig
from trigger_relay.models.state import DriveCursor, TriggerState
from trigger_relay.sources.base import PollResult, SourceHandler, format_rfc3339, parse_timestamp

PAGE_SIZE = 100
FILE_FIELDS = "nextPageToken, files(id, name, mimeType, createdTime, size, webViewLink)"


def _quote_literal(value: str) -> str:
    """Escape a string literal for the drive query language."""
    return value.replace('\\', '\\\\').replace("'", "\\'")


def build_query(since: datetime, folder_id: Optional[str], file_type: Optional[str]) -> str:
    """Build the drive search query for files created after since."""
    query = f"createdTime > '{format_rfc3339(since)}' and trashed = false"
    if folder_id:
        query += f" and '{_quote_literal(folder_id)}' in parents"
    if file_type:
        query += f" and mimeType contains '{_quote_literal(file_type)}'"
    return query


class DriveFileHandler(SourceHandler):
    """Emit one 'new-file' event per file created since the last poll."""

    source_name = "Google Drive"
    base_url = "https://www.googleapis.com/drive/v3"

    def cursor_for(self, config: DriveFileConfig) -> DriveCursor:
        return DriveCursor(folder_id=config.folder_id, file_type=config.file_type)

    async def _poll(
        self,
        config: DriveFileConfig,
        state: TriggerState,
        access_token: str,
        now: datetime
    ) -> PollResult:
        since = self._timestamp_cursor(state, now)

        files = await self._get_items(
            f"{self.base_url}/files",
            access_token,
            items_key='files',
            params={
                'q': build_query(since, config.folder_id, config.file_type),
                'fields': FILE_FIELDS,
                'orderBy': 'createdTime',
                'pageSize': PAGE_SIZE,
            }
        )

        # The server-side filter is authoritative; re-check and order locally
        created = []
        for item in files:
            created_at = parse_timestamp(item.get('createdTime'))
            if created_at is None or created_at > since:
                created.append((created_at or now, item))
        created.sort(key=lambda pair: pair[0])

        events = [self._file_event(config, item) for _, item in created]
        new_state = state.model_copy(update={
            'last_timestamp': now,
            'last_item_id': events[-1]['fileId'] if events else state.last_item_id,
            'state_data': self.cursor_for(config),
        })
        return PollResult(events=events, new_state=new_state)

    @staticmethod
    def _file_event(config: DriveFileConfig, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'type': 'new-file',
            'fileId': item.get('id'),
            'name': item.get('name'),
            'mimeType': item.get('mimeType'),
            'size': item.get('size'),
            'createdTime': item.get('createdTime'),
            'webViewLink': item.get('webViewLink'),
            'folderId': config.folder_id,
        }
