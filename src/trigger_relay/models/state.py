"""
Module: state.py
Description: Per-trigger incremental cursor.

TriggerState is the high-water mark a source handler compares against
to avoid re-emitting items already seen. Its state_data is a typed
union recording which source the cursor belongs to; a mismatch with the
trigger's current config means the trigger was reconfigured.

Dependencies: pydantic, datetime, typing
Author: Trigger Relay Team
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SheetCursor(BaseModel):
    """Bookkeeping for the spreadsheet-row handler."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["sheet"] = "sheet"
    spreadsheet_id: str
    sheet_name: str


class CalendarCursor(BaseModel):
    """Bookkeeping for the calendar-event handler."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["calendar"] = "calendar"
    calendar_id: str


class DriveCursor(BaseModel):
    """Bookkeeping for the drive-file handler."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["drive"] = "drive"
    folder_id: Optional[str] = None
    file_type: Optional[str] = None


StateData = Annotated[
    Union[SheetCursor, CalendarCursor, DriveCursor],
    Field(discriminator="kind"),
]


class TriggerState(BaseModel):
    """
    Incremental cursor for one trigger.

    Attributes:
        trigger_id: Owning trigger
        last_item_id: Opaque id of the last item seen
        last_timestamp: Time-based high-water mark
        last_row_count: Row-count high-water mark for append-only sources
        state_data: Source-specific bookkeeping
        version: Optimistic-concurrency version; 0 means never stored
        updated_at: Last write time
    """

    trigger_id: str = Field(..., min_length=1)
    last_item_id: Optional[str] = None
    last_timestamp: Optional[datetime] = None
    last_row_count: Optional[int] = Field(default=None, ge=0)
    state_data: Optional[StateData] = None
    version: int = Field(default=0, ge=0)
    updated_at: Optional[datetime] = None
