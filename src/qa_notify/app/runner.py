"""Composition root wiring configuration into the dispatch stack."""

from __future__ import annotations

import asyncio
import logging
import signal
from types import TracebackType
from typing import Self

from qa_notify.broker.protocols import QueueProvider
from qa_notify.broker.rabbitmq import RabbitMQProvider
from qa_notify.config.models import AppConfig
from qa_notify.notifications.base.registry import ChannelRegistry
from qa_notify.notifications.channels import build_channel_registry, create_http_client
from qa_notify.notifications.managers import (
    DirectNotificationManager,
    QueueBasedNotificationManager,
    SmartNotificationManager,
    UserPreferenceService,
)
from qa_notify.notifications.strategy import SmartNotificationStrategy, SystemMetricsCollector
from qa_notify.notifications.templates import seed_templates
from qa_notify.repositories import InMemoryNotificationRepository, InMemoryUserRepository
from qa_notify.repositories.protocols import NotificationRepository, UserRepository
from qa_notify.utils.http_client import AIOHTTPClient

logger = logging.getLogger(__name__)


class ApplicationRunner:
    """Builds every component from config and owns their lifecycle.

    Collaborators can be injected; anything left out is built from config,
    with in-memory repositories standing in for the application's storage.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        provider: QueueProvider | None = None,
        users: UserRepository | None = None,
        repository: NotificationRepository | None = None,
        registry: ChannelRegistry | None = None,
    ) -> None:
        self.config: AppConfig = config
        self.http_client: AIOHTTPClient = create_http_client(config)
        self.provider: QueueProvider = provider or RabbitMQProvider(config.broker)
        self.users: UserRepository = users or InMemoryUserRepository()
        self.repository: NotificationRepository = repository or InMemoryNotificationRepository()
        self.registry: ChannelRegistry = registry or build_channel_registry(config, http_client=self.http_client)

        self.preferences: UserPreferenceService = UserPreferenceService(
            self.users,
            supported_languages=config.languages.supported,
            default_language=config.languages.default,
        )
        self.strategy: SmartNotificationStrategy = SmartNotificationStrategy(config.strategy)
        self.metrics: SystemMetricsCollector = SystemMetricsCollector(
            config.metrics,
            provider=self.provider,
            queue_name=config.broker.queue,
        )
        self.direct_manager: DirectNotificationManager = DirectNotificationManager(
            self.registry,
            self.preferences,
            self.repository,
        )
        self.queue_manager: QueueBasedNotificationManager = QueueBasedNotificationManager(
            self.provider,
            config.broker,
            self.registry,
            self.preferences,
            self.repository,
        )
        self.dispatcher: SmartNotificationManager = SmartNotificationManager(
            strategy=self.strategy,
            metrics=self.metrics,
            repository=self.repository,
            preferences=self.preferences,
            direct_manager=self.direct_manager,
            queue_manager=self.queue_manager,
            sender=config.sender_address,
        )
        self._shutdown: asyncio.Event = asyncio.Event()

    async def start(self) -> None:
        """Seed templates and, if configured, connect to the broker now."""
        _ = await seed_templates(self.repository)
        if self.config.broker.eager_connect:
            await self.queue_manager.ensure_ready()
        logger.info("Notification service started (channels: %s)", ", ".join(self.registry.list_types()))

    async def close(self) -> None:
        """Stop consuming, disconnect and close HTTP sessions."""
        await self.queue_manager.close()
        await self.http_client.close()
        logger.info("Notification service stopped")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def request_shutdown(self) -> None:
        if not self._shutdown.is_set():
            logger.info("Shutdown requested")
            self._shutdown.set()

    async def run_worker(self) -> None:
        """Consume the notification queue until shutdown is requested.

        SIGINT and SIGTERM request a graceful shutdown.
        """
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.request_shutdown)

        try:
            async with self:
                consumer_tag = await self.queue_manager.start_consumer()
                logger.info("Worker running (consumer=%s)", consumer_tag)
                _ = await self._shutdown.wait()
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                _ = loop.remove_signal_handler(sig)
            logger.info("Worker shutdown complete")
