"""
Configuration management for terrarunner.

This module handles runner settings, defaults, and environment overrides.
"""

from .settings import Settings
from .defaults import DEFAULT_SETTINGS

__all__ = ["Settings", "DEFAULT_SETTINGS"]
