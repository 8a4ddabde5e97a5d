"""
Configuration module for the Application Tracker.
"""

from application_tracker.config.settings import settings, Settings, PACKAGE_ROOT, DATA_DIR

__all__ = ["settings", "Settings", "PACKAGE_ROOT", "DATA_DIR"]
