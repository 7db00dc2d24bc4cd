"""
config/ — taskweave runtime configuration.
"""

from taskweave.config.settings import ConfigError, Settings, get_settings, load_settings

__all__ = ["ConfigError", "Settings", "get_settings", "load_settings"]
