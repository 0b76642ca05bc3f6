"""
Package: trigger_relay
Description: Trigger processing and webhook delivery engine.

Polls external sources (spreadsheets, calendars, drives) on behalf of
users, detects new items since the last poll and forwards each one to a
user-supplied webhook with retry and failure isolation.
"""

__version__ = "0.1.0"
