"""Application layer: CLI and runner."""

from __future__ import annotations

from .runner import ApplicationRunner

__all__ = ["ApplicationRunner"]
