"""
Module: trigger.py
Description: Trigger data models.

A Trigger is a standing subscription to one external source. It carries
the source configuration, the webhook delivery target snapshot source,
and health metadata maintained by the trigger processor.

Key Components:
- Trigger: Stored trigger with health metadata
- TriggerCreate: Input for creating a trigger
- TriggerUpdate: Partial update input
- MAX_CONSECUTIVE_ERRORS: Circuit-breaker threshold

Dependencies: pydantic, datetime, typing
Author: Trigger Relay Team
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_CONSECUTIVE_ERRORS = 10

WebhookMethod = Literal["POST", "PUT"]


def _validate_webhook_url(v: str) -> str:
    if not v.startswith(('http://', 'https://')):
        raise ValueError("webhook_url must be a valid HTTP/HTTPS URL")
    return v


def _validate_headers(v: Dict[str, str]) -> Dict[str, str]:
    for name, value in v.items():
        if not name or any(c in name for c in ' :\r\n'):
            raise ValueError(f"Invalid header name: {name!r}")
        if '\r' in value or '\n' in value:
            raise ValueError(f"Invalid value for header {name!r}")
    return v


class Trigger(BaseModel):
    """
    Trigger model representing a user's subscription to a source.

    Attributes:
        trigger_id: Unique trigger identifier (uuid4)
        trigger_type: Selects the source handler ('new-sheet-row', ...)
        config: Source-specific parameters, parsed into a typed variant
            at processing time
        webhook_url: Delivery target
        webhook_method: POST or PUT
        webhook_headers: Custom headers merged into every delivery
        is_active: Whether the trigger is polled
        error_count: Consecutive trigger-level failures
        last_error: Message of the most recent failure
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True
    )

    trigger_id: str = Field(..., min_length=1, description="Unique trigger identifier")
    user_id: str = Field(..., min_length=1, description="Owning user")
    workspace_id: str = Field(..., min_length=1, description="Owning workspace")
    project_id: str = Field(..., min_length=1, description="Owning project")
    connection_id: str = Field(..., min_length=1, description="Connection providing credentials")
    integration_id: str = Field(..., min_length=1, description="Integration / source type")

    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    description: Optional[str] = Field(default=None, description="Optional description")
    trigger_type: str = Field(..., min_length=1, max_length=100, description="Source handler key")
    config: Dict[str, Any] = Field(default_factory=dict, description="Source configuration")

    webhook_url: str = Field(..., description="Webhook delivery URL")
    webhook_method: WebhookMethod = Field(default="POST", description="Webhook HTTP method")
    webhook_headers: Dict[str, str] = Field(default_factory=dict, description="Custom headers")

    is_active: bool = Field(default=True, description="Whether the trigger is polled")
    last_checked_at: Optional[datetime] = Field(default=None)
    last_triggered_at: Optional[datetime] = Field(default=None)
    error_count: int = Field(default=0, ge=0, description="Consecutive trigger-level failures")
    last_error: Optional[str] = Field(default=None)

    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last modification timestamp")

    @field_validator('webhook_url')
    @classmethod
    def validate_webhook_url(cls, v: str) -> str:
        """Only http(s) targets are deliverable."""
        return _validate_webhook_url(v)

    @field_validator('webhook_headers')
    @classmethod
    def validate_webhook_headers(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Reject header names/values that would break the HTTP request."""
        return _validate_headers(v)

    @property
    def is_disabled_by_errors(self) -> bool:
        """True when the circuit breaker has deactivated this trigger."""
        return not self.is_active and self.error_count >= MAX_CONSECUTIVE_ERRORS


class TriggerCreate(BaseModel):
    """Input for creating a new trigger."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1)
    workspace_id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    connection_id: str = Field(..., min_length=1)
    integration_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    trigger_type: str = Field(..., min_length=1, max_length=100)
    config: Dict[str, Any] = Field(default_factory=dict)
    webhook_url: str
    webhook_method: WebhookMethod = "POST"
    webhook_headers: Dict[str, str] = Field(default_factory=dict)
    is_active: bool = True

    @field_validator('webhook_url')
    @classmethod
    def validate_webhook_url(cls, v: str) -> str:
        return _validate_webhook_url(v)

    @field_validator('webhook_headers')
    @classmethod
    def validate_webhook_headers(cls, v: Dict[str, str]) -> Dict[str, str]:
        return _validate_headers(v)


class TriggerUpdate(BaseModel):
    """
    Partial update for a trigger.

    Only fields explicitly set are written. Changing trigger_type or
    config is a reconfiguration and discards the stored cursor.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    trigger_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    config: Optional[Dict[str, Any]] = None
    webhook_url: Optional[str] = None
    webhook_method: Optional[WebhookMethod] = None
    webhook_headers: Optional[Dict[str, str]] = None
    is_active: Optional[bool] = None

    @field_validator('webhook_url')
    @classmethod
    def validate_webhook_url(cls, v: Optional[str]) -> Optional[str]:
        return _validate_webhook_url(v) if v is not None else v

    @field_validator('webhook_headers')
    @classmethod
    def validate_webhook_headers(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        return _validate_headers(v) if v is not None else v

    @property
    def is_reconfiguration(self) -> bool:
        return self.trigger_type is not None or self.config is not None

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly set to a non-null value."""
        return self.model_dump(exclude_unset=True, exclude_none=True)
