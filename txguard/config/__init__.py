"""
Configuration management for TxGuard.

Loads settings from environment variables and an optional .env file.
"""

from txguard.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
