"""Public entry point choosing direct or queued delivery per notification."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Final

from qa_notify.broker.message import QueueMessage, new_message_id
from qa_notify.notifications.exceptions import (
    ChannelDeliveryError,
    ChannelNotSupportedError,
    DispatchCancelledError,
    MultiChannelDispatchError,
)
from qa_notify.notifications.managers.direct import DirectNotificationManager
from qa_notify.notifications.managers.preferences import UserPreferenceService
from qa_notify.notifications.managers.queue_based import QueueBasedNotificationManager, QueueStatus
from qa_notify.notifications.models import (
    ChannelResult,
    DeliveryStrategy,
    DispatchReceipt,
    MultiChannelNotificationPayload,
    NotificationContext,
    NotificationDraft,
    NotificationPayload,
    NotificationPreferenceFlags,
    NotificationPriority,
    NotificationRecord,
    NotificationStats,
    NotificationStatus,
    NotificationType,
    User,
    UserNotificationPreferences,
    UserType,
)
from qa_notify.notifications.strategy import SmartNotificationStrategy, SystemMetricsCollector
from qa_notify.notifications.templates import render_named_template
from qa_notify.repositories.protocols import NotificationRepository
from qa_notify.utils.logging import correlation_scope
from qa_notify.utils.sanitization import sanitize_exception

logger = logging.getLogger(__name__)

SEND_FAILED: Final[str] = "SEND_FAILED"
ANONYMOUS_USER: Final[str] = "anonymous"


def determine_user_type(user: User | None) -> UserType:
    """Admins first, then premium subscribers, otherwise standard."""
    if user is None:
        return UserType.STANDARD
    if user.role == "admin":
        return UserType.ADMIN
    if user.is_premium or user.subscription_type == "premium":
        return UserType.PREMIUM
    return UserType.STANDARD


def determine_notification_type(data: Mapping[str, Any]) -> NotificationType:  # pyright: ignore[reportExplicitAny]
    """Read ``data["type"]``; anything unrecognized is NORMAL."""
    try:
        return NotificationType(str(data.get("type", "")).upper())
    except ValueError:
        return NotificationType.NORMAL


def determine_priority(data: Mapping[str, Any]) -> NotificationPriority:  # pyright: ignore[reportExplicitAny]
    """Read ``data["priority"]``; anything unrecognized is normal."""
    try:
        return NotificationPriority(str(data.get("priority", "")).lower())
    except ValueError:
        return NotificationPriority.NORMAL


class SmartNotificationManager:
    """Persists a record per dispatch and routes it by strategy.

    Every call builds a delivery context, asks the strategy for direct or
    queued delivery, creates ``pending`` records, delegates, then moves the
    records to ``sent`` or ``failed``. Failures are re-raised after the
    records are updated.

    The queue manager only touches the broker when the queue path is chosen,
    so a deployment that always goes direct never connects to RabbitMQ.
    """

    def __init__(
        self,
        *,
        strategy: SmartNotificationStrategy,
        metrics: SystemMetricsCollector,
        repository: NotificationRepository,
        preferences: UserPreferenceService,
        direct_manager: DirectNotificationManager,
        queue_manager: QueueBasedNotificationManager,
        sender: str | None = None,
    ) -> None:
        self._strategy: SmartNotificationStrategy = strategy
        self._metrics: SystemMetricsCollector = metrics
        self._repository: NotificationRepository = repository
        self._preferences: UserPreferenceService = preferences
        self._direct: DirectNotificationManager = direct_manager
        self._queue: QueueBasedNotificationManager = queue_manager
        self._sender: str | None = sender

    @property
    def direct_manager(self) -> DirectNotificationManager:
        return self._direct

    @property
    def queue_manager(self) -> QueueBasedNotificationManager:
        return self._queue

    async def _build_context(
        self,
        user: User | None,
        user_id: str | None,
        data: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    ) -> tuple[NotificationContext, DeliveryStrategy]:
        context = self._strategy.create_context(
            user_id or ANONYMOUS_USER,
            determine_user_type(user),
            determine_notification_type(data),
            determine_priority(data),
        )
        metrics = await self._metrics.get_metrics()
        return context, self._strategy.get_strategy(context, metrics)

    def _envelope_metadata(self, context: NotificationContext) -> dict[str, object]:
        return {
            "timeout": self._strategy.get_timeout(context),
            "max_retries": self._strategy.get_retry_attempts(context),
        }

    @staticmethod
    def _queued_results(message: QueueMessage) -> list[ChannelResult]:
        """A published message counts as success for every channel it carries."""
        return [ChannelResult(channel=channel, success=True) for channel in message.channels]

    async def _create_records(
        self,
        channels: list[str],
        *,
        user_id: str | None,
        subject: str,
        message: str,
        html: str | None,
        destinations: Mapping[str, str],
        data: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
        context: NotificationContext,
        strategy: DeliveryStrategy,
        template_name: str | None = None,
        tags: list[str] | None = None,
    ) -> list[NotificationRecord]:
        records: list[NotificationRecord] = []
        for channel in channels:
            draft = NotificationDraft(
                channel=channel,
                user_id=user_id,
                subject=subject,
                message=message,
                html=html,
                from_address=self._sender,
                to_address=destinations.get(channel, ""),
                strategy=strategy,
                priority=context.priority,
                template_name=template_name,
                max_retries=self._strategy.get_retry_attempts(context),
                tags=list(tags or []),
                data=dict(data),
            )
            records.append(await self._repository.create_notification(draft))
        return records

    async def _mark_sent(self, record: NotificationRecord, message_id: str) -> None:
        _ = await self._repository.update_notification_status(
            record.id,
            NotificationStatus.SENT,
            message_id=message_id,
        )

    async def _mark_failed(self, record: NotificationRecord, error: BaseException) -> None:
        _ = await self._repository.update_notification_status(
            record.id,
            NotificationStatus.FAILED,
            error_message=sanitize_exception(error),
            error_code=SEND_FAILED,
        )

    async def _run(
        self,
        records: list[NotificationRecord],
        strategy: DeliveryStrategy,
        send: Callable[[], Awaitable[tuple[str, list[ChannelResult]]]],
    ) -> DispatchReceipt:
        """Execute a send and settle every record from its outcome."""
        correlation_id = records[0].id if records else new_message_id()
        with correlation_scope(correlation_id):
            started = time.perf_counter()
            try:
                message_id, results = await send()
            except MultiChannelDispatchError as exc:
                self._metrics.record_dispatch((time.perf_counter() - started) * 1000, False)
                await self._settle_by_channel(records, exc.results, new_message_id(), exc)
                logger.error("Direct dispatch partially failed on: %s", ", ".join(exc.failed_channels))
                raise
            except Exception as exc:
                self._metrics.record_dispatch((time.perf_counter() - started) * 1000, False)
                logger.error("%s dispatch failed: %s", strategy.value, sanitize_exception(exc))
                for record in records:
                    await self._mark_failed(record, exc)
                raise
            except asyncio.CancelledError:
                self._metrics.record_dispatch((time.perf_counter() - started) * 1000, False)
                logger.warning("%s dispatch cancelled; failing %d record(s)", strategy.value, len(records))
                cancelled = DispatchCancelledError(strategy.value)
                for record in records:
                    await self._mark_failed(record, cancelled)
                raise

            self._metrics.record_dispatch((time.perf_counter() - started) * 1000, True)
            if results:
                await self._settle_by_channel(records, results, message_id, None)
            else:
                for record in records:
                    await self._mark_sent(record, message_id)
            logger.info("%s dispatch succeeded for %d record(s)", strategy.value, len(records))
            return DispatchReceipt(
                strategy=strategy,
                record_ids=[record.id for record in records],
                message_id=message_id,
                channel_results=results,
            )

    async def _settle_by_channel(
        self,
        records: list[NotificationRecord],
        results: list[ChannelResult],
        message_id: str,
        error: Exception | None,
    ) -> None:
        """Give each record the outcome of its own channel.

        A record whose channel has no result was skipped as unsupported.
        """
        by_channel = {result.channel: result for result in results}
        for record in records:
            result = by_channel.get(record.channel)
            if result is None:
                await self._mark_failed(record, ChannelNotSupportedError(record.channel))
            elif result.success:
                await self._mark_sent(record, message_id)
            else:
                failure = result.error or error or ChannelDeliveryError(record.channel, "unknown error")
                await self._mark_failed(record, failure)

    async def notify(self, payload: NotificationPayload, user_id: str | None = None) -> DispatchReceipt:
        """Dispatch one single-channel payload.

        Raises:
            ChannelNotSupportedError: On the direct path, if the channel is unknown
            ChannelDeliveryError: On the direct path, if the channel fails
            BrokerError: On the queue path, if publishing fails
        """
        user = await self._preferences.get_user(user_id) if user_id else None
        context, strategy = await self._build_context(user, user_id, payload.data)
        records = await self._create_records(
            [payload.channel],
            user_id=user_id,
            subject=payload.subject,
            message=payload.message,
            html=payload.html,
            destinations={payload.channel: payload.to},
            data=payload.data,
            context=context,
            strategy=strategy,
        )

        async def send() -> tuple[str, list[ChannelResult]]:
            if strategy is DeliveryStrategy.DIRECT:
                result = await self._direct.notify(payload)
                return new_message_id(), [result]
            queued = await self._queue.notify(payload, self._envelope_metadata(context))
            return queued.id, self._queued_results(queued)

        return await self._run(records, strategy, send)

    async def notify_to_multiple_channels(
        self,
        payload: MultiChannelNotificationPayload,
        user_id: str | None = None,
        *,
        template_name: str | None = None,
        user: User | None = None,
    ) -> DispatchReceipt:
        """Dispatch one payload over several channels with a record per channel.

        Raises:
            NoSupportedChannelsError: On the direct path, if no channel is registered
            MultiChannelDispatchError: On the direct path, if any channel failed
            BrokerError: On the queue path, if publishing fails
        """
        if user is None and user_id:
            user = await self._preferences.get_user(user_id)
        data = dict(payload.data)
        if "priority" not in data and payload.priority is not None:
            data["priority"] = payload.priority.value
        context, strategy = await self._build_context(user, user_id, data)
        records = await self._create_records(
            payload.channels,
            user_id=user_id,
            subject=payload.subject,
            message=payload.message,
            html=payload.html,
            destinations={channel: payload.destination_for(channel) for channel in payload.channels},
            data=data,
            context=context,
            strategy=strategy,
            template_name=template_name,
        )

        async def send() -> tuple[str, list[ChannelResult]]:
            if strategy is DeliveryStrategy.DIRECT:
                results = await self._direct.notify_to_multiple_channels(payload)
                return new_message_id(), results
            queued = await self._queue.notify_to_multiple_channels(payload, self._envelope_metadata(context))
            return queued.id, self._queued_results(queued)

        return await self._run(records, strategy, send)

    async def notify_user(self, user_id: str, payload: MultiChannelNotificationPayload) -> DispatchReceipt:
        """Dispatch to a user's active channels.

        No record is created when the user is unknown or has no active channel.

        Raises:
            UserNotFoundError: If the user does not exist
            NoActiveChannelsError: If the user has no usable channel
        """
        user = await self._preferences.get_user(user_id)
        prepared = self._preferences.build_user_payload(user, payload)
        return await self.notify_to_multiple_channels(prepared, user_id, user=user)

    async def notify_user_with_template(
        self,
        user_id: str,
        template_name: str,
        variables: Mapping[str, object] | None = None,
        locale: str | None = None,
    ) -> DispatchReceipt:
        """Render a stored template for a user and dispatch it.

        Raises:
            TemplateNotFoundError: If the template does not exist
            TemplateInactiveError: If the template is disabled
            UserNotFoundError: If the user does not exist
            NoActiveChannelsError: If the user has no usable channel
        """
        user = await self._preferences.get_user(user_id)
        template, rendered = await render_named_template(
            self._repository,
            template_name,
            locale or self._preferences.language_for(user),
            variables or {},
        )
        payload = MultiChannelNotificationPayload(
            subject=rendered.subject,
            message=rendered.message,
            html=rendered.html,
            data={"templateName": template.name, "priority": template.priority.value},
        )
        prepared = self._preferences.build_user_payload(user, payload)
        return await self.notify_to_multiple_channels(
            prepared,
            user_id,
            template_name=template.name,
            user=user,
        )

    async def get_user_notifications(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[NotificationRecord]:
        return await self._repository.get_notifications_by_user_id(user_id, limit, offset)

    async def get_notification_stats(self, user_id: str | None = None) -> NotificationStats:
        return await self._repository.get_notification_stats(user_id)

    async def get_queue_status(self) -> QueueStatus:
        """Queue counters; connects to the broker if needed."""
        return await self._queue.get_queue_status()

    async def get_user_notification_preferences(self, user_id: str) -> UserNotificationPreferences:
        return await self._preferences.get_user_notification_preferences(user_id)

    async def update_user_notification_preferences(
        self,
        user_id: str,
        preferences: NotificationPreferenceFlags,
    ) -> UserNotificationPreferences:
        return await self._preferences.update_user_notification_preferences(user_id, preferences)
