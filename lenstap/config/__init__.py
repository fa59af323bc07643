"""
Configuration management package
"""

from .settings import get_settings, get_test_settings, load_settings_from_file, Settings

__all__ = ["get_settings", "get_test_settings", "load_settings_from_file", "Settings"]
