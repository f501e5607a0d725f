"""Test module imports and package layout."""

from __future__ import annotations

import importlib
from pathlib import Path
from types import ModuleType

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
SRC_DIR = PROJECT_ROOT / "src" / "qa_notify"

PACKAGES = [
    "qa_notify",
    "qa_notify.app",
    "qa_notify.broker",
    "qa_notify.config",
    "qa_notify.config.loader",
    "qa_notify.config.models",
    "qa_notify.notifications",
    "qa_notify.notifications.base",
    "qa_notify.notifications.channels",
    "qa_notify.notifications.managers",
    "qa_notify.notifications.models",
    "qa_notify.notifications.strategy",
    "qa_notify.notifications.templates",
    "qa_notify.repositories",
    "qa_notify.utils",
]


class TestPackageImports:
    """Every package imports cleanly and exports what it declares."""

    @pytest.mark.parametrize("name", PACKAGES)
    def test_import_package(self, name: str) -> None:
        module = importlib.import_module(name)

        assert isinstance(module, ModuleType)

    @pytest.mark.parametrize("name", PACKAGES)
    def test_all_names_resolve(self, name: str) -> None:
        module = importlib.import_module(name)

        for exported in getattr(module, "__all__", []):
            assert hasattr(module, exported), f"{name}.__all__ lists missing name {exported}"

    def test_cli_entry_point_is_click_group(self) -> None:
        from qa_notify.app.cli import cli

        assert set(cli.commands) >= {"worker", "queue-status", "send", "templates"}


class TestProjectStructure:
    """Layout checks for the source tree."""

    def test_every_package_has_init(self) -> None:
        for name in PACKAGES:
            path = PROJECT_ROOT / "src" / Path(*name.split("."))
            assert (path / "__init__.py").exists(), f"{name} is missing __init__.py"

    def test_builtin_templates_ship_with_package(self) -> None:
        assert (SRC_DIR / "notifications" / "templates" / "builtin.yaml").is_file()
