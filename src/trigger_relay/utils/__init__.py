"""
Package: utils
Description: Shared helpers for Trigger Relay.

Current utilities:
- logger: Structured logging configuration and helpers
- metrics: CloudWatch metrics publishing
- batch_helpers: List chunking for bounded concurrency
- filters: Field filters applied to detected source items
"""

__all__ = []
