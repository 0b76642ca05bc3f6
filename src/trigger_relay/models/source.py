"""
Module: source.py
Description: Typed source configurations.

A trigger's stored config is a free-form mapping. Before polling, it is
parsed into one variant of a closed union discriminated on trigger_type,
so each source handler receives a validated, typed configuration and an
unknown type surfaces as a configuration error for that trigger.

Key Components:
- SheetRowConfig / CalendarEventConfig / DriveFileConfig: Config variants
- SourceConfig: Discriminated union over the variants
- parse_source_config(): Trigger type + mapping -> typed config

Dependencies: pydantic, typing
Author: Trigger Relay Team
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from trigger_relay.exceptions import TriggerConfigurationError
from trigger_relay.utils.filters import FieldFilter

SHEET_ROW = "new-sheet-row"
CALENDAR_EVENT = "new-calendar-event"
DRIVE_FILE = "new-drive-file"

SUPPORTED_TRIGGER_TYPES = (SHEET_ROW, CALENDAR_EVENT, DRIVE_FILE)


class _BaseSourceConfig(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True, extra="ignore")

    filters: List[FieldFilter] = Field(default_factory=list, description="Item filters")


class SheetRowConfig(_BaseSourceConfig):
    """Watch a spreadsheet sheet for appended rows."""

    trigger_type: Literal["new-sheet-row"] = SHEET_ROW
    spreadsheet_id: str = Field(..., min_length=1)
    sheet_name: str = Field(..., min_length=1)


class CalendarEventConfig(_BaseSourceConfig):
    """Watch a calendar for newly created events."""

    trigger_type: Literal["new-calendar-event"] = CALENDAR_EVENT
    calendar_id: str = Field(default="primary", min_length=1)


class DriveFileConfig(_BaseSourceConfig):
    """Watch a drive (optionally one folder / MIME type) for new files."""

    trigger_type: Literal["new-drive-file"] = DRIVE_FILE
    folder_id: Optional[str] = None
    file_type: Optional[str] = None


SourceConfig = Annotated[
    Union[SheetRowConfig, CalendarEventConfig, DriveFileConfig],
    Field(discriminator="trigger_type"),
]

_source_config_adapter = TypeAdapter(SourceConfig)


def parse_source_config(trigger_type: str, config: Dict[str, Any]) -> SourceConfig:
    """
    Parse a stored trigger config into its typed variant.

    Args:
        trigger_type: The trigger's type key
        config: The stored config mapping

    Returns:
        The typed configuration

    Raises:
        TriggerConfigurationError: If the type is unknown or a required
            field is missing or invalid
    """
    if trigger_type not in SUPPORTED_TRIGGER_TYPES:
        raise TriggerConfigurationError(f"No handler found for trigger type: {trigger_type}")

    try:
        return _source_config_adapter.validate_python(
            {**(config or {}), "trigger_type": trigger_type}
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        raise TriggerConfigurationError(
            f"Invalid config for trigger type {trigger_type}: {problems}"
        ) from e
