"""Direct-versus-queue decision rules."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Final

from qa_notify.config.models import StrategyConfig
from qa_notify.notifications.models import (
    DeliveryStrategy,
    NotificationContext,
    NotificationPriority,
    NotificationType,
    SystemMetrics,
    TimeOfDay,
    UserType,
)

logger = logging.getLogger(__name__)

RETRY_ATTEMPTS: Final[dict[NotificationType, int]] = {
    NotificationType.CRITICAL: 5,
    NotificationType.HIGH: 3,
    NotificationType.NORMAL: 2,
    NotificationType.LOW: 1,
}

TIMEOUT_SECONDS: Final[dict[NotificationPriority, float]] = {
    NotificationPriority.URGENT: 5.0,
    NotificationPriority.HIGH: 10.0,
    NotificationPriority.NORMAL: 30.0,
    NotificationPriority.LOW: 60.0,
}


def time_of_day(hour: int) -> TimeOfDay:
    """Classify a wall-clock hour.

    Examples:
        >>> time_of_day(9)
        <TimeOfDay.PEAK: 'peak'>
        >>> time_of_day(23)
        <TimeOfDay.OFF_PEAK: 'off-peak'>
    """
    if 9 <= hour <= 17:
        return TimeOfDay.PEAK
    if 18 <= hour <= 22:
        return TimeOfDay.NORMAL
    return TimeOfDay.OFF_PEAK


class SmartNotificationStrategy:
    """Ordered rule chain choosing direct or queued delivery.

    The first matching rule wins:

    1. CRITICAL notifications go direct.
    2. Urgent notifications for premium users go direct.
    3. A deep queue or slow responses send everything else to the queue.
    4. So does a high error rate.
    5. So do many open connections during peak hours.
    6. Otherwise the queue is used.

    ``get_strategy`` only reads its arguments, so equal inputs always give
    equal decisions.
    """

    def __init__(
        self,
        config: StrategyConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._config: StrategyConfig = config or StrategyConfig()
        self._clock: Callable[[], datetime] = clock

    @property
    def config(self) -> StrategyConfig:
        return self._config

    def get_strategy(self, context: NotificationContext, metrics: SystemMetrics) -> DeliveryStrategy:
        """Pick the delivery strategy for one notification."""
        decision, reason = self._decide(context, metrics)
        logger.debug(
            "Strategy %s for user %s (%s)",
            decision.value,
            context.user_id,
            reason,
        )
        return decision

    def _decide(self, context: NotificationContext, metrics: SystemMetrics) -> tuple[DeliveryStrategy, str]:
        if context.notification_type is NotificationType.CRITICAL:
            return DeliveryStrategy.DIRECT, "critical notification"

        if context.user_type is UserType.PREMIUM and context.priority is NotificationPriority.URGENT:
            return DeliveryStrategy.DIRECT, "urgent premium notification"

        if (
            metrics.queue_size > self._config.max_queue_size
            or metrics.response_time > self._config.max_response_time_ms
        ):
            return DeliveryStrategy.QUEUE, "backlog or slow responses"

        if metrics.error_rate > self._config.max_error_rate:
            return DeliveryStrategy.QUEUE, "high error rate"

        if (
            context.time_of_day is TimeOfDay.PEAK
            and metrics.active_connections > self._config.max_peak_connections
        ):
            return DeliveryStrategy.QUEUE, "peak hours with many connections"

        return DeliveryStrategy.QUEUE, "default"

    def should_use_queue(self, context: NotificationContext, metrics: SystemMetrics) -> bool:
        return self.get_strategy(context, metrics) is DeliveryStrategy.QUEUE

    def get_retry_attempts(self, context: NotificationContext) -> int:
        """Advisory retry budget by notification type."""
        return RETRY_ATTEMPTS[context.notification_type]

    def get_timeout(self, context: NotificationContext) -> float:
        """Advisory send timeout in seconds by priority."""
        return TIMEOUT_SECONDS[context.priority]

    def current_time_of_day(self) -> TimeOfDay:
        return time_of_day(self._clock().hour)

    def create_context(
        self,
        user_id: str,
        user_type: UserType = UserType.STANDARD,
        notification_type: NotificationType = NotificationType.NORMAL,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> NotificationContext:
        """Build a context stamped with the current time of day."""
        return NotificationContext(
            user_id=user_id,
            user_type=user_type,
            notification_type=notification_type,
            priority=priority,
            time_of_day=self.current_time_of_day(),
        )
