"""
Module: test_drive.py
Description: Unit tests for the drive-file source handler.
"""

import re
from datetime import datetime, timezone

import httpx
import pytest

from trigger_relay.exceptions import SourceFetchError
from trigger_relay.models.source import DriveFileConfig
from trigger_relay.models.state import TriggerState
from trigger_relay.sources.drive import build_query, DriveFileHandler

FILES_URL = re.compile(r'https://www\.googleapis\.com/drive/v3/files\?.*')


@pytest.fixture
def handler():
    return DriveFileHandler(timeout_seconds=5)


class TestBuildQuery:
    """Test cases for the drive search query."""

    def test_plain(self):
        since = datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)
        assert build_query(since, None, None) == "createdTime > '2026-03-01T08:30:00.000Z' and trashed = false"

    def test_folder_and_type(self):
        since = datetime(2026, 3, 1, tzinfo=timezone.utc)
        query = build_query(since, "fold'er", 'pdf')

        assert "'fold\\'er' in parents" in query
        assert "mimeType contains 'pdf'" in query


class TestDriveFileHandler:
    """Test cases for drive file detection."""

    @pytest.mark.asyncio
    async def test_new_files(self, handler, clock, httpx_mock):
        httpx_mock.add_response(url=FILES_URL, json={'files': [
            {
                'id': 'file-1',
                'name': 'report.pdf',
                'mimeType': 'application/pdf',
                'size': '2048',
                'createdTime': '2026-03-02T11:00:00.000Z',
                'webViewLink': 'https://drive.example.com/file-1',
            }
        ]})
        config = DriveFileConfig(folder_id='folder-9')

        result = await handler.check_for_events(config, TriggerState(trigger_id='trg-1'), 'token-abc', clock())

        assert result.events == [{
            'type': 'new-file',
            'fileId': 'file-1',
            'name': 'report.pdf',
            'mimeType': 'application/pdf',
            'size': '2048',
            'createdTime': '2026-03-02T11:00:00.000Z',
            'webViewLink': 'https://drive.example.com/file-1',
            'folderId': 'folder-9',
        }]
        assert result.new_state.last_timestamp == clock()

        params = httpx_mock.get_request().url.params
        assert "'folder-9' in parents" in params['q']
        assert params['orderBy'] == 'createdTime'
        assert params['pageSize'] == '100'

    @pytest.mark.asyncio
    async def test_timeout_raises_fetch_error(self, handler, clock, httpx_mock):
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(SourceFetchError, match="Google Drive API timeout"):
            await handler.check_for_events(
                DriveFileConfig(), TriggerState(trigger_id='trg-1'), 'token-abc', clock()
            )
