"""Decision inputs and outcomes of the dispatch strategy."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum

from qa_notify.notifications.models.payload import NotificationPriority
from qa_notify.notifications.models.records import DeliveryStrategy


class UserType(StrEnum):
    """Account tiers considered by the strategy."""

    PREMIUM = "premium"
    STANDARD = "standard"
    ADMIN = "admin"


class NotificationType(StrEnum):
    """Urgency classes considered by the strategy."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"


class TimeOfDay(StrEnum):
    """Load bands derived from the wall-clock hour."""

    PEAK = "peak"
    NORMAL = "normal"
    OFF_PEAK = "off-peak"


@dataclass(slots=True, frozen=True)
class NotificationContext:
    """Everything the strategy knows about one notification."""

    user_id: str
    user_type: UserType
    notification_type: NotificationType
    priority: NotificationPriority
    time_of_day: TimeOfDay


@dataclass(slots=True, frozen=True)
class SystemMetrics:
    """Point-in-time load snapshot.

    ``response_time`` is in milliseconds; ``error_rate`` and
    ``memory_usage`` are percentages.
    """

    queue_size: int
    response_time: float
    error_rate: float
    active_connections: int
    memory_usage: float
    timestamp: float = field(default_factory=time.time)


FALLBACK_METRICS = SystemMetrics(
    queue_size=0,
    response_time=1000.0,
    error_rate=0.0,
    active_connections=10,
    memory_usage=50.0,
    timestamp=0.0,
)


@dataclass(slots=True)
class ChannelResult:
    """Outcome of sending to one channel."""

    channel: str
    success: bool
    error: Exception | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass(slots=True)
class DispatchReceipt:
    """What the dispatcher reports back for a successful call."""

    strategy: DeliveryStrategy
    record_ids: list[str]
    message_id: str | None = None
    channel_results: list[ChannelResult] = field(default_factory=list)
