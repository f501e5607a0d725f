"""Durable delivery through the message broker."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from qa_notify.broker.message import QueueMessage, queue_priority
from qa_notify.broker.protocols import QueueProvider
from qa_notify.config.models import BrokerConfig
from qa_notify.notifications.base.registry import ChannelRegistry
from qa_notify.notifications.exceptions import ChannelNotSupportedError, NoSupportedChannelsError
from qa_notify.notifications.managers.preferences import UserPreferenceService
from qa_notify.notifications.models import (
    ChannelResult,
    MultiChannelNotificationPayload,
    NotificationPayload,
)
from qa_notify.notifications.templates import render_named_template
from qa_notify.repositories.protocols import NotificationRepository
from qa_notify.utils.sanitization import sanitize_exception

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class QueueStatus:
    """Counters of the primary and dead-letter queues."""

    message_count: int
    consumer_count: int
    dead_letter_count: int

    def to_dict(self) -> dict[str, int]:
        return {
            "messageCount": self.message_count,
            "consumerCount": self.consumer_count,
            "deadLetterCount": self.dead_letter_count,
        }


class QueueBasedNotificationManager:
    """Publishes notifications to RabbitMQ and delivers them from a consumer.

    The broker is contacted on the first call that needs it (``ensure_ready``),
    which connects and declares the topology once:

    - a durable direct dead-letter exchange bound to the dead-letter queue
    - a durable topic exchange for notifications
    - the primary queue, dead-lettering rejected and expired messages

    Consumed single-channel messages fail as a whole and are requeued.
    Multi-channel messages are best-effort: a failing channel is logged and
    the remaining channels still receive the message.
    """

    def __init__(
        self,
        provider: QueueProvider,
        config: BrokerConfig,
        registry: ChannelRegistry,
        preferences: UserPreferenceService,
        repository: NotificationRepository,
    ) -> None:
        self._provider: QueueProvider = provider
        self._config: BrokerConfig = config
        self._registry: ChannelRegistry = registry
        self._preferences: UserPreferenceService = preferences
        self._repository: NotificationRepository = repository
        self._ready: bool = False
        self._ready_lock: asyncio.Lock = asyncio.Lock()
        self._consumer_tag: str | None = None

    @property
    def is_ready(self) -> bool:
        return self._ready and self._provider.is_connected()

    @property
    def consumer_tag(self) -> str | None:
        return self._consumer_tag

    async def ensure_ready(self) -> None:
        """Connect and declare the topology unless already done.

        Raises:
            BrokerConnectionError: If the broker cannot be reached
        """
        if self.is_ready:
            return
        async with self._ready_lock:
            if self.is_ready:
                return
            await self._provider.connect()
            if not self._ready:
                await self.setup_topology()
                self._ready = True

    async def setup_topology(self) -> None:
        """Declare exchanges, queues and bindings; safe to repeat."""
        config = self._config
        await self._provider.create_exchange(config.dead_letter_exchange, "direct", durable=True)
        await self._provider.create_queue(config.dead_letter_queue, durable=True, auto_delete=False)
        await self._provider.bind_queue(
            config.dead_letter_queue,
            config.dead_letter_exchange,
            config.dead_letter_routing_key,
        )

        await self._provider.create_exchange(config.exchange, "topic", durable=True)
        await self._provider.create_queue(
            config.queue,
            durable=True,
            auto_delete=False,
            arguments=config.queue_arguments(),
        )
        await self._provider.bind_queue(config.queue, config.exchange, f"{config.routing_key}.#")
        logger.info(
            "Queue topology ready (queue=%s, type=%s, dlq=%s)",
            config.queue,
            config.queue_type,
            config.dead_letter_queue,
        )

    @staticmethod
    def build_message(
        data: dict[str, object],
        priority: str | None,
        metadata: Mapping[str, object] | None = None,
    ) -> QueueMessage:
        return QueueMessage(
            data=data,
            priority=queue_priority(priority),
            metadata=dict(metadata or {}),
        )

    async def _publish(self, message: QueueMessage) -> QueueMessage:
        await self.ensure_ready()
        _ = await self._provider.publish_to_queue(self._config.queue, message)
        logger.info("Queued message %s (priority=%d)", message.id, message.priority)
        return message

    async def notify(
        self,
        payload: NotificationPayload,
        metadata: Mapping[str, object] | None = None,
    ) -> QueueMessage:
        """Publish a single-channel payload.

        Raises:
            ChannelNotSupportedError: If no channel is registered for the payload
            BrokerConnectionError: If the broker cannot be reached
            QueuePublishError: If the broker rejects the message
        """
        if not self._registry.is_supported(payload.channel):
            raise ChannelNotSupportedError(payload.channel)
        message = self.build_message(payload.model_dump(mode="json"), payload.priority, metadata)
        return await self._publish(message)

    async def notify_to_multiple_channels(
        self,
        payload: MultiChannelNotificationPayload,
        metadata: Mapping[str, object] | None = None,
    ) -> QueueMessage:
        """Publish a multi-channel payload as one message.

        Channels without a registered transport are dropped before publishing;
        the returned message lists only the channels that were kept.

        Raises:
            NoSupportedChannelsError: If no requested channel is registered
        """
        supported = [channel for channel in payload.channels if self._registry.is_supported(channel)]
        if not supported:
            raise NoSupportedChannelsError(payload.channels)
        if len(supported) < len(payload.channels):
            skipped = [channel for channel in payload.channels if channel not in supported]
            logger.warning("Not queueing unsupported channels: %s", ", ".join(skipped))
            payload = payload.model_copy(update={"channels": supported})
        message = self.build_message(payload.model_dump(mode="json"), payload.effective_priority(), metadata)
        return await self._publish(message)

    async def notify_user(
        self,
        user_id: str,
        payload: MultiChannelNotificationPayload,
        metadata: Mapping[str, object] | None = None,
    ) -> QueueMessage:
        """Resolve a user's active channels and publish one message for them.

        Raises:
            UserNotFoundError: If the user does not exist
            NoActiveChannelsError: If the user has no usable channel
        """
        user = await self._preferences.get_user(user_id)
        prepared = self._preferences.build_user_payload(user, payload)
        return await self.notify_to_multiple_channels(prepared, metadata)

    async def notify_user_with_template(
        self,
        user_id: str,
        template_name: str,
        variables: Mapping[str, object] | None = None,
        locale: str | None = None,
        metadata: Mapping[str, object] | None = None,
    ) -> QueueMessage:
        """Render a stored template and publish it for a user."""
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
        return await self.notify_to_multiple_channels(prepared, metadata)

    async def process_message(self, message: QueueMessage) -> list[ChannelResult]:
        """Deliver one consumed message.

        Raises:
            pydantic.ValidationError: If the data is not a notification payload
            NotificationError: If a single-channel delivery fails
        """
        if "channels" in message.data:
            payload = MultiChannelNotificationPayload.model_validate(message.data)
            return await self._deliver_best_effort(message.id, payload)

        single = NotificationPayload.model_validate(message.data)
        await self._registry.send_to_channel(single.channel, single)
        logger.info("Delivered queued message %s via %s", message.id, single.channel)
        return [ChannelResult(channel=single.channel, success=True)]

    async def _deliver_best_effort(
        self,
        message_id: str,
        payload: MultiChannelNotificationPayload,
    ) -> list[ChannelResult]:
        results: list[ChannelResult] = []
        for channel in payload.channels:
            try:
                await self._registry.send_to_channel(channel, payload.for_channel(channel))
            except Exception as exc:
                logger.error(
                    "Queued message %s: channel %s failed: %s",
                    message_id,
                    channel,
                    sanitize_exception(exc),
                )
                results.append(ChannelResult(channel=channel, success=False, error=exc))
                continue
            results.append(ChannelResult(channel=channel, success=True))

        delivered = sum(1 for result in results if result.success)
        logger.info("Queued message %s delivered on %d/%d channels", message_id, delivered, len(results))
        return results

    async def _handle(self, message: QueueMessage) -> None:
        _ = await self.process_message(message)

    async def start_consumer(self) -> str:
        """Subscribe to the primary queue.

        Returns:
            The consumer tag
        """
        await self.ensure_ready()
        if self._consumer_tag is not None:
            return self._consumer_tag
        self._consumer_tag = await self._provider.consume(self._config.queue, self._handle)
        logger.info("Consuming from %s", self._config.queue)
        return self._consumer_tag

    async def stop_consumer(self) -> None:
        if self._consumer_tag is None:
            return
        await self._provider.cancel(self._consumer_tag)
        self._consumer_tag = None

    async def get_queue_status(self) -> QueueStatus:
        await self.ensure_ready()
        primary = await self._provider.get_queue_info(self._config.queue)
        dead_letters = await self._provider.get_queue_info(self._config.dead_letter_queue)
        return QueueStatus(
            message_count=primary.message_count,
            consumer_count=primary.consumer_count,
            dead_letter_count=dead_letters.message_count,
        )

    async def close(self) -> None:
        """Stop consuming and disconnect."""
        await self.stop_consumer()
        if self._provider.is_connected():
            await self._provider.disconnect()
        self._ready = False
