"""
Module: settings.py
Description: Application configuration using pydantic-settings.

Configures all application settings from environment variables with
validation and defaults. Supports .env files for local development.
"""

import re
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="Trigger Relay", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")
    product_name: str = Field(
        default="TriggerRelay",
        description="Product name used in the webhook User-Agent and X- headers"
    )

    # AWS settings
    aws_region: str = Field(default="us-east-1", description="AWS region")
    stage: str = Field(default="dev", description="Deployment stage")

    # DynamoDB settings
    triggers_table_name: str = Field(
        default="trigger-relay-triggers",
        description="Name of the DynamoDB triggers table"
    )
    trigger_state_table_name: str = Field(
        default="trigger-relay-trigger-state",
        description="Name of the DynamoDB per-trigger cursor table"
    )
    trigger_events_table_name: str = Field(
        default="trigger-relay-trigger-events",
        description="Name of the DynamoDB trigger events table"
    )
    connections_table_name: str = Field(
        default="trigger-relay-connections",
        description="Name of the DynamoDB table holding connection credentials"
    )

    # Scheduler settings
    cron_secret: Optional[str] = Field(
        default=None,
        description="Bearer secret required by the cron endpoint (disabled when unset)"
    )
    poll_interval_seconds: int = Field(
        default=300,
        ge=1,
        description="Minimum time between two polls of the same trigger"
    )
    batch_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of triggers processed concurrently per batch"
    )
    stale_pending_seconds: int = Field(
        default=600,
        ge=60,
        description="Age after which a pending event is picked up by the retry sweep"
    )
    event_retention_days: int = Field(
        default=30,
        ge=1,
        description="Age in days after which terminal events are deleted"
    )

    # Delivery settings
    webhook_timeout: int = Field(
        default=30,
        ge=1,
        le=60,
        description="HTTP timeout in seconds for webhook delivery attempts"
    )
    source_fetch_timeout: int = Field(
        default=30,
        ge=1,
        le=60,
        description="HTTP timeout in seconds for source API fetches"
    )

    # Metrics settings
    metrics_enabled: bool = Field(default=False, description="Publish CloudWatch metrics")
    metrics_namespace: str = Field(default="TriggerRelay", description="CloudWatch namespace")

    @field_validator(
        'triggers_table_name',
        'trigger_state_table_name',
        'trigger_events_table_name',
        'connections_table_name'
    )
    @classmethod
    def validate_table_names(cls, v: str) -> str:
        """Validate DynamoDB table names."""
        if not v or not isinstance(v, str):
            raise ValueError("Table name must be a non-empty string")

        # Allow alphanumeric, hyphens, underscores, dots
        if not re.match(r'^[a-zA-Z0-9_.-]{3,255}$', v):
            raise ValueError(
                "Table name must be 3-255 letters, numbers, hyphens, dots or underscores"
            )

        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @field_validator('product_name')
    @classmethod
    def validate_product_name(cls, v: str) -> str:
        """Product name ends up in HTTP header names, so keep it token-safe."""
        if not re.match(r'^[A-Za-z][A-Za-z0-9]*$', v):
            raise ValueError("product_name must be alphanumeric and start with a letter")
        return v


# Global settings instance
settings = Settings()
