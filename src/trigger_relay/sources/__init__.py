"""
Package: sources
Description: Source handlers that detect new items in monitored services.

Handlers are selected by the typed configuration variant of a trigger,
so the set of supported sources is closed and checked in one place.

- sheets: new spreadsheet rows
- calendar: new calendar events
- drive: new drive files
"""

from typing import Optional

from trigger_relay.exceptions import TriggerConfigurationError
from trigger_relay.models.source import CalendarEventConfig, DriveFileConfig, SheetRowConfig, SourceConfig
from trigger_relay.sources.base import PollResult, SourceHandler
from trigger_relay.sources.calendar import CalendarEventHandler
from trigger_relay.sources.drive import DriveFileHandler
from trigger_relay.sources.sheets import SheetRowHandler


class SourceHandlers:
    """The handler set used by the trigger processor."""

    def __init__(
        self,
        sheets: Optional[SourceHandler] = None,
        calendar: Optional[SourceHandler] = None,
        drive: Optional[SourceHandler] = None,
        timeout_seconds: int = 30
    ):
        self.sheets = sheets or SheetRowHandler(timeout_seconds)
        self.calendar = calendar or CalendarEventHandler(timeout_seconds)
        self.drive = drive or DriveFileHandler(timeout_seconds)

    def for_config(self, config: SourceConfig) -> SourceHandler:
        """Select the handler for a typed configuration."""
        if isinstance(config, SheetRowConfig):
            return self.sheets
        if isinstance(config, CalendarEventConfig):
            return self.calendar
        if isinstance(config, DriveFileConfig):
            return self.drive
        raise TriggerConfigurationError(f"No handler for config type {type(config).__name__}")


__all__ = [
    "CalendarEventHandler",
    "DriveFileHandler",
    "PollResult",
    "SheetRowHandler",
    "SourceHandler",
    "SourceHandlers",
]
