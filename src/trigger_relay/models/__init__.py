"""
Package: models
Description: Pydantic data models for Trigger Relay.

- Trigger / TriggerCreate / TriggerUpdate: Standing source subscriptions
- SourceConfig variants: Typed per-source configuration
- TriggerState: Per-trigger incremental cursor
- TriggerEvent: Detected occurrence plus delivery record
"""

from .event import (
    DeliveryResult,
    EventStatus,
    TriggerEvent,
    TriggerStats,
    WebhookResponse,
)
from .source import (
    CalendarEventConfig,
    DriveFileConfig,
    SheetRowConfig,
    SourceConfig,
    parse_source_config,
)
from .state import CalendarCursor, DriveCursor, SheetCursor, TriggerState
from .trigger import Trigger, TriggerCreate, TriggerUpdate

__all__ = [
    "CalendarCursor",
    "CalendarEventConfig",
    "DeliveryResult",
    "DriveCursor",
    "DriveFileConfig",
    "EventStatus",
    "SheetCursor",
    "SheetRowConfig",
    "SourceConfig",
    "Trigger",
    "TriggerCreate",
    "TriggerEvent",
    "TriggerState",
    "TriggerStats",
    "TriggerUpdate",
    "WebhookResponse",
    "parse_source_config",
]
