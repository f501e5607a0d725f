"""Configuration management for the notification service."""

from __future__ import annotations

from .exceptions import (
    ConfigError,
    ConfigLoadError,
    ConfigMergeError,
    ConfigValidationError,
    EnvLoadError,
    handle_config_error,
    log_config_error,
    suggest_config_fix,
)
from .loader import ConfigLoader, load_config
from .models import AppConfig

__all__ = [
    # Exception classes
    "ConfigError",
    "ConfigLoadError",
    "ConfigMergeError",
    "ConfigValidationError",
    "EnvLoadError",
    # Utility functions
    "handle_config_error",
    "log_config_error",
    "suggest_config_fix",
    # Loading
    "AppConfig",
    "ConfigLoader",
    "load_config",
]
