"""Configuration sources."""

from __future__ import annotations

from .config_loader import ConfigLoader, load_config, validate_config
from .env_loader import LEGACY_ENV_MAPPINGS, EnvLoader
from .merger import ConfigMerger
from .yaml_loader import YamlLoader

__all__ = [
    "LEGACY_ENV_MAPPINGS",
    "ConfigLoader",
    "ConfigMerger",
    "EnvLoader",
    "YamlLoader",
    "load_config",
    "validate_config",
]
