"""QA notification service: multi-channel dispatch, direct or through RabbitMQ."""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
