"""Configuration — defaults, settings model, and source hierarchy."""

from mediamanager.config.hierarchy import load_config_hierarchy, load_settings
from mediamanager.config.schema import MediaSettings

__all__ = ["MediaSettings", "load_config_hierarchy", "load_settings"]
