"""Strategy selection between direct and queued delivery."""

from __future__ import annotations

from .metrics import SystemMetricsCollector
from .strategy import RETRY_ATTEMPTS, TIMEOUT_SECONDS, SmartNotificationStrategy, time_of_day

__all__ = [
    "RETRY_ATTEMPTS",
    "TIMEOUT_SECONDS",
    "SmartNotificationStrategy",
    "SystemMetricsCollector",
    "time_of_day",
]
