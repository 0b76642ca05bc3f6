"""
Package: config
Description: Application configuration for Trigger Relay.
"""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
