"""Notification managers: direct, queue-based and the smart dispatcher."""

from __future__ import annotations

from .direct import DirectNotificationManager
from .preferences import ActiveChannels, UserPreferenceService, resolve_active_channels
from .queue_based import QueueBasedNotificationManager, QueueStatus
from .smart import (
    SEND_FAILED,
    SmartNotificationManager,
    determine_notification_type,
    determine_priority,
    determine_user_type,
)

__all__ = [
    # Managers
    "DirectNotificationManager",
    "QueueBasedNotificationManager",
    "QueueStatus",
    "SmartNotificationManager",
    # Preferences
    "ActiveChannels",
    "UserPreferenceService",
    "resolve_active_channels",
    # Dispatch helpers
    "SEND_FAILED",
    "determine_notification_type",
    "determine_priority",
    "determine_user_type",
]
