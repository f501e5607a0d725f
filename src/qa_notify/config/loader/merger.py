"""Deep merging of configuration sources."""

from __future__ import annotations

import copy
from typing import Any

from ..exceptions import ConfigMergeError

ConfigDict = dict[str, Any]  # pyright: ignore[reportExplicitAny] # config systems need flexible types


class ConfigMerger:
    """Combines configuration dictionaries, later sources taking precedence."""

    def __init__(self, track_sources: bool = False) -> None:
        """Initialize ConfigMerger.

        Args:
            track_sources: Whether to record which source supplied each value
        """
        self._track_sources: bool = track_sources
        self._audit_trail: dict[str, str] = {}

    def merge_multiple(self, sources: list[tuple[str, object]]) -> ConfigDict:
        """Merge named sources left to right.

        Args:
            sources: ``(name, mapping)`` pairs in increasing precedence

        Returns:
            Merged configuration dictionary

        Raises:
            ConfigMergeError: If a source is not a mapping
        """
        result: ConfigDict = {}
        for name, source in sources:
            if not isinstance(source, dict):
                raise ConfigMergeError(f"Source '{name}' must be a dictionary")
            self._deep_merge(result, source, name, "")  # pyright: ignore[reportUnknownArgumentType] # dict after isinstance check
        return result

    def _deep_merge(self, target: ConfigDict, source: ConfigDict, source_name: str, path: str) -> None:
        for key, value in source.items():  # pyright: ignore[reportAny]
            current_path = f"{path}.{key}" if path else key
            existing = target.get(key)  # pyright: ignore[reportAny]
            if isinstance(existing, dict) and isinstance(value, dict):
                self._deep_merge(existing, value, source_name, current_path)  # pyright: ignore[reportUnknownArgumentType]
                continue
            if existing is not None and isinstance(existing, dict) != isinstance(value, dict):
                raise ConfigMergeError(
                    f"Cannot merge a section with a scalar at '{current_path}'",
                    config_path=current_path,
                    context={"source": source_name},
                )
            target[key] = copy.deepcopy(value)  # pyright: ignore[reportAny]
            if self._track_sources:
                self._audit_trail[current_path] = source_name

    def get_audit_trail(self) -> dict[str, str]:
        """Map of config path to the source that last set it."""
        return self._audit_trail.copy()
