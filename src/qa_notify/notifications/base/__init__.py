"""Channel contract, registry and retry helpers."""

from __future__ import annotations

from .channel import Channel
from .registry import ChannelRegistry
from .retry import (
    CircuitBreaker,
    CircuitBreakerError,
    CircuitBreakerState,
    backoff_delay,
    with_backoff,
)

__all__ = [
    "Channel",
    "ChannelRegistry",
    "CircuitBreaker",
    "CircuitBreakerError",
    "CircuitBreakerState",
    "backoff_delay",
    "with_backoff",
]
