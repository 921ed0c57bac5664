"""
Configuration settings for TexPlan

The settings implementation lives in settings.py using pydantic-settings.

Usage:
    from texplan.core.config import settings
    # or
    from texplan.core.settings import get_settings
    settings = get_settings()
"""
from texplan.core.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
