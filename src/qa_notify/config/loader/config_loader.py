"""Loads the application configuration from file and environment."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from ..exceptions import ConfigLoadError, ConfigValidationError
from ..models.main import AppConfig
from .env_loader import EnvLoader
from .merger import ConfigMerger
from .yaml_loader import YamlLoader

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Builds an AppConfig from defaults, a YAML file and the environment."""

    def __init__(
        self,
        config_path: Path | None = None,
        env_loader: EnvLoader | None = None,
    ) -> None:
        """Initialize configuration loader.

        Args:
            config_path: YAML file to read; skipped when None
            env_loader: Environment loader, defaulting to the QA_NOTIFY_ prefix
        """
        self.config_path: Path | None = config_path
        self.yaml_loader: YamlLoader = YamlLoader()
        self.env_loader: EnvLoader = env_loader or EnvLoader()
        self.merger: ConfigMerger = ConfigMerger(track_sources=True)

    def load_raw(self) -> dict[str, object]:
        """Merge file and environment sources without validating.

        Raises:
            ConfigLoadError: If an explicitly given file does not exist
        """
        file_config: dict[str, object] = {}
        if self.config_path is not None:
            if not self.config_path.is_file():
                raise ConfigLoadError(
                    f"Configuration file not found: {self.config_path}",
                    file_path=str(self.config_path),
                )
            file_config = self.yaml_loader.load(self.config_path)
            logger.debug("Loaded configuration file %s", self.config_path)

        return self.merger.merge_multiple([
            ("file", file_config),
            ("environment", self.env_loader.load()),
        ])

    def load(self) -> AppConfig:
        """Load and validate the complete configuration.

        Raises:
            ConfigLoadError: If the file cannot be read
            EnvLoadError: If an environment value is malformed
            ConfigValidationError: If the merged result is invalid
        """
        raw = self.load_raw()
        return validate_config(raw)


def validate_config(raw: Mapping[str, object]) -> AppConfig:
    """Validate a raw mapping into an AppConfig.

    Raises:
        ConfigValidationError: If validation fails
    """
    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigValidationError("Configuration validation failed", pydantic_error=e) from e


def load_config(config_path: Path | None = None) -> AppConfig:
    """Convenience wrapper around ConfigLoader."""
    return ConfigLoader(config_path).load()
