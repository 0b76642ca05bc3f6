"""
Module: handlers
Description: Package initialization for API endpoint handlers.

This package contains FastAPI route handlers:
- cron: Scheduled sweep endpoint
- triggers: Per-trigger statistics and event history

All handlers use dependency injection for the repository and the
trigger processor.
"""

__all__ = []
