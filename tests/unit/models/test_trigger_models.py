"""
Module: test_trigger_models.py
Description: Unit tests for Trigger models and typed source configs.
"""

import pytest
from pydantic import ValidationError

from trigger_relay.exceptions import TriggerConfigurationError
from trigger_relay.models.source import (
    CalendarEventConfig,
    DriveFileConfig,
    SheetRowConfig,
    parse_source_config,
)
from trigger_relay.models.trigger import TriggerUpdate


class TestTriggerModel:
    """Test cases for Trigger validation."""

    def test_defaults(self, make_trigger):
        trigger = make_trigger()

        assert trigger.is_active is True
        assert trigger.webhook_method == 'POST'
        assert trigger.webhook_headers == {}
        assert trigger.error_count == 0

    def test_webhook_url_must_be_http(self, make_trigger):
        with pytest.raises(ValidationError, match="HTTP/HTTPS"):
            make_trigger(webhook_url='ftp://example.com/hook')

    def test_only_post_and_put(self, make_trigger):
        assert make_trigger(webhook_method='PUT').webhook_method == 'PUT'
        with pytest.raises(ValidationError):
            make_trigger(webhook_method='PATCH')

    def test_header_injection_rejected(self, make_trigger):
        with pytest.raises(ValidationError):
            make_trigger(webhook_headers={'X-Test': 'a\r\nInjected: yes'})

    def test_disabled_by_errors(self, make_trigger):
        assert make_trigger(is_active=False, error_count=10).is_disabled_by_errors
        assert not make_trigger(is_active=False, error_count=0).is_disabled_by_errors


class TestTriggerUpdate:
    """Test cases for partial updates."""

    def test_reconfiguration_detected(self):
        assert TriggerUpdate(config={'spreadsheet_id': 'other', 'sheet_name': 'S'}).is_reconfiguration
        assert TriggerUpdate(trigger_type='new-drive-file').is_reconfiguration
        assert not TriggerUpdate(name='Renamed', is_active=False).is_reconfiguration

    def test_changes_only_set_fields(self):
        assert TriggerUpdate(name='Renamed').changes() == {'name': 'Renamed'}


class TestSourceConfig:
    """Test cases for parsing stored configs into typed variants."""

    def test_sheet_config(self):
        config = parse_source_config('new-sheet-row', {'spreadsheet_id': 'abc', 'sheet_name': 'Sheet1'})

        assert isinstance(config, SheetRowConfig)
        assert config.spreadsheet_id == 'abc'
        assert config.filters == []

    def test_calendar_defaults_to_primary(self):
        config = parse_source_config('new-calendar-event', {})

        assert isinstance(config, CalendarEventConfig)
        assert config.calendar_id == 'primary'

    def test_drive_fields_optional(self):
        config = parse_source_config('new-drive-file', {'folder_id': 'folder-9'})

        assert isinstance(config, DriveFileConfig)
        assert config.folder_id == 'folder-9'
        assert config.file_type is None

    def test_unknown_trigger_type(self):
        with pytest.raises(TriggerConfigurationError, match="No handler found for trigger type: new-email"):
            parse_source_config('new-email', {})

    def test_missing_required_field(self):
        with pytest.raises(TriggerConfigurationError, match="sheet_name"):
            parse_source_config('new-sheet-row', {'spreadsheet_id': 'abc'})

    def test_filters_parsed(self):
        config = parse_source_config('new-sheet-row', {
            'spreadsheet_id': 'abc',
            'sheet_name': 'Sheet1',
            'filters': [{'field': 'row.Plan', 'operator': 'eq', 'value': 'pro'}]
        })

        assert config.filters[0].field == 'row.Plan'
        assert config.filters[0].operator == 'eq'
