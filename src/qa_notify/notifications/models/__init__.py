"""Data models for the notification subsystem."""

from __future__ import annotations

from .context import (
    FALLBACK_METRICS,
    ChannelResult,
    DispatchReceipt,
    NotificationContext,
    NotificationType,
    SystemMetrics,
    TimeOfDay,
    UserType,
)
from .payload import (
    ChannelType,
    MultiChannelNotificationPayload,
    NotificationPayload,
    NotificationPriority,
)
from .records import (
    DEFAULT_MAX_RETRIES,
    DeliveryStrategy,
    NotificationDraft,
    NotificationRecord,
    NotificationStats,
    NotificationStatus,
    NotificationTemplate,
)
from .user import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    NotificationPreferenceFlags,
    User,
    UserNotificationPreferences,
    resolve_language,
)

__all__ = [
    # Payloads
    "ChannelType",
    "MultiChannelNotificationPayload",
    "NotificationPayload",
    "NotificationPriority",
    # Strategy inputs and outcomes
    "FALLBACK_METRICS",
    "ChannelResult",
    "DispatchReceipt",
    "NotificationContext",
    "NotificationType",
    "SystemMetrics",
    "TimeOfDay",
    "UserType",
    # Persistence
    "DEFAULT_MAX_RETRIES",
    "DeliveryStrategy",
    "NotificationDraft",
    "NotificationRecord",
    "NotificationStats",
    "NotificationStatus",
    "NotificationTemplate",
    # Users
    "DEFAULT_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "NotificationPreferenceFlags",
    "User",
    "UserNotificationPreferences",
    "resolve_language",
]
