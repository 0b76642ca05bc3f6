"""
Module: filters.py
Description: Field filters applied to items detected by source handlers.

A trigger's config may carry a list of filters. After a source handler
has diffed the upstream collection against the stored cursor, only the
items matching every filter are fired. The cursor advances regardless.

Key Components:
- FieldFilter: One filter condition (dotted field path, operator, value)
- apply_filters_to_events(): Keep only the events matching all filters
- Support for nested paths (row.Email, start.dateTime)
- Support for comparison operators (eq, ne, gt, gte, lt, lte, contains, startswith)

Author: Trigger Relay Team
"""

from typing import Any, Dict, List, Literal, Tuple

from pydantic import BaseModel, Field

from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)

FilterOperator = Literal['eq', 'ne', 'gt', 'gte', 'lt', 'lte', 'contains', 'startswith']


class FieldFilter(BaseModel):
    """
    Represents a single filter condition.

    Attributes:
        field: Dotted path into the raw event (e.g. 'row.Email')
        operator: The comparison operator
        value: The value to compare against
    """

    field: str = Field(
        ...,
        min_length=1,
        pattern=r'^[A-Za-z_][A-Za-z0-9_.\- ]*$',
        description="Dotted path into the detected item"
    )
    operator: FilterOperator = Field(default='eq', description="Comparison operator")
    value: Any = Field(..., description="Value to compare against")


def apply_filters_to_events(
    events: List[Dict[str, Any]],
    filters: List[FieldFilter]
) -> List[Dict[str, Any]]:
    """
    Apply filters to raw source events, preserving order.

    Args:
        events: Raw events produced by a source handler
        filters: Filters that must all match

    Returns:
        Filtered list of events
    """
    if not filters:
        return events

    filtered = [event for event in events if _event_matches_filters(event, filters)]

    if len(filtered) != len(events):
        logger.debug(
            "Events filtered out by trigger filters",
            total=len(events),
            kept=len(filtered),
            filter_count=len(filters)
        )

    return filtered


def _event_matches_filters(event: Dict[str, Any], filters: List[FieldFilter]) -> bool:
    """Check if an event matches all the given filters."""
    return all(_event_matches_filter(event, filter_obj) for filter_obj in filters)


def _event_matches_filter(event: Dict[str, Any], filter_obj: FieldFilter) -> bool:
    """
    Check if an event matches a single filter.

    Missing fields never match. Ordering operators compare numerically
    when both sides look like numbers, since spreadsheet cells arrive as
    strings.
    """
    field_value = _get_field_value(event, filter_obj.field)
    if field_value is None:
        return False

    operator = filter_obj.operator
    value = filter_obj.value

    if operator == 'contains':
        if isinstance(field_value, str):
            return str(value) in field_value
        if isinstance(field_value, list):
            return value in field_value
        return False
    if operator == 'startswith':
        if isinstance(field_value, str):
            return field_value.startswith(str(value))
        return False

    left, right = _coerce_pair(field_value, value)
    try:
        if operator == 'eq':
            return left == right
        if operator == 'ne':
            return left != right
        if operator == 'gt':
            return left > right
        if operator == 'gte':
            return left >= right
        if operator == 'lt':
            return left < right
        if operator == 'lte':
            return left <= right
    except TypeError:
        # Incomparable types (e.g. dict vs number) simply do not match
        return False

    return False


def _coerce_pair(left: Any, right: Any) -> Tuple[Any, Any]:
    """Coerce both sides to float when both parse as numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return left, right
    try:
        return float(left), float(right)
    except (TypeError, ValueError):
        return left, right


def _get_field_value(event: Dict[str, Any], field: str) -> Any:
    """
    Extract a field value from an event, supporting nested paths.

    Args:
        event: Raw event dictionary
        field: Field path (e.g., 'row.Email', 'start.dateTime')

    Returns:
        The field value, or None if not found
    """
    current: Any = event

    for part in field.split('.'):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return None

    return current
