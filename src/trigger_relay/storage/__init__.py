"""
Module: storage
Description: Package initialization for the persistence layer.

This package contains the DynamoDB implementation of the trigger
repository:
- dynamodb: Triggers, per-trigger cursors and trigger events
- schema: Table definitions shared by bootstrap scripts and tests

All repository methods follow async interfaces for consistency.
"""

from trigger_relay.storage.dynamodb import DynamoDBTriggerRepository

__all__ = ["DynamoDBTriggerRepository"]
