"""Unified configuration management for the project companion.

This module provides a single source of truth for configuration,
integrating environment variables, .env files, YAML files, and defaults.
"""

from project_companion.config.env_loader import Environment, get_environment
from project_companion.config.loader import ConfigLoadError, load_yaml_file
from project_companion.config.preferences_loader import (
    PreferencesConfigError,
    UserPreferences,
    default_preferences,
    load_preferences,
)
from project_companion.config.settings import AppConfig, get_settings, load_app_config

__all__ = [
    # App-level settings
    "AppConfig",
    "get_settings",
    "load_app_config",
    "Environment",
    "get_environment",
    # Configuration loaders
    "load_yaml_file",
    "load_preferences",
    "default_preferences",
    "UserPreferences",
    # Exception classes
    "ConfigLoadError",
    "PreferencesConfigError",
]
