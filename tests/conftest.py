"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest

from qa_notify.config.loader import LEGACY_ENV_MAPPINGS
from qa_notify.config.models import BrokerConfig
from qa_notify.notifications.base.registry import ChannelRegistry
from qa_notify.notifications.managers import (
    DirectNotificationManager,
    QueueBasedNotificationManager,
    SmartNotificationManager,
    UserPreferenceService,
)
from qa_notify.notifications.models import NotificationPreferenceFlags, User
from qa_notify.notifications.strategy import SmartNotificationStrategy
from qa_notify.notifications.templates import load_builtin_templates
from qa_notify.repositories import InMemoryNotificationRepository, InMemoryUserRepository
from tests.fixtures.notification_mocks import (
    FakeEmailChannel,
    FakePushChannel,
    FakeQueueProvider,
    FakeSmsChannel,
    FakeWebhookChannel,
    FixedMetricsCollector,
    make_registry,
)

# 03:00 falls in the off-peak band
OFF_PEAK = datetime(2026, 1, 5, 3, 0)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment variables out of configuration loading."""
    for name in list(os.environ):
        if name.startswith("QA_NOTIFY_") or name in LEGACY_ENV_MAPPINGS:
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """Undo configure_logging calls made by the CLI and logging tests."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in ("aiormq", "aio_pika"):
        logging.getLogger(name).setLevel(logging.NOTSET)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Minimal YAML configuration with every optional channel disabled."""
    path = tmp_path / "config.yaml"
    _ = path.write_text(
        """
broker:
  host: localhost
  queue: test-notifications
smtp:
  enabled: false
sms:
  enabled: false
push:
  enabled: false
webhook:
  enabled: true
logging:
  level: WARNING
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def ada() -> User:
    """User reachable by email and SMS, English speaking."""
    return User(
        id="user-ada",
        email="ada@example.com",
        phone_number="+15550000001",
        push_token="push-token-ada",
        webhook_url="https://hooks.example.com/ada",
        language="en",
        notification_preferences=NotificationPreferenceFlags(email=True, sms=True),
    )


@pytest.fixture
def grace() -> User:
    """Premium user with every channel enabled, default language."""
    return User(
        id="user-grace",
        email="grace@example.com",
        phone_number="+15550000002",
        push_token="push-token-grace",
        webhook_url="https://hooks.example.com/grace",
        is_premium=True,
        notification_preferences=NotificationPreferenceFlags(email=True, sms=True, push=True, webhook=True),
    )


@pytest.fixture
def silent() -> User:
    """User who opted out of everything."""
    return User(
        id="user-silent",
        email="silent@example.com",
        notification_preferences=NotificationPreferenceFlags(email=False),
    )


@pytest.fixture
def users(ada: User, grace: User, silent: User) -> InMemoryUserRepository:
    return InMemoryUserRepository([ada, grace, silent])


@pytest.fixture
def repository() -> InMemoryNotificationRepository:
    """Notification repository seeded with the built-in templates."""
    return InMemoryNotificationRepository(load_builtin_templates())


@pytest.fixture
def email_channel() -> FakeEmailChannel:
    return FakeEmailChannel()


@pytest.fixture
def sms_channel() -> FakeSmsChannel:
    return FakeSmsChannel()


@pytest.fixture
def push_channel() -> FakePushChannel:
    return FakePushChannel()


@pytest.fixture
def webhook_channel() -> FakeWebhookChannel:
    return FakeWebhookChannel()


@pytest.fixture
def registry(
    email_channel: FakeEmailChannel,
    sms_channel: FakeSmsChannel,
    push_channel: FakePushChannel,
    webhook_channel: FakeWebhookChannel,
) -> ChannelRegistry:
    return make_registry(email_channel, sms_channel, push_channel, webhook_channel)


@pytest.fixture
def preferences(users: InMemoryUserRepository) -> UserPreferenceService:
    return UserPreferenceService(users)


@pytest.fixture
def direct_manager(
    registry: ChannelRegistry,
    preferences: UserPreferenceService,
    repository: InMemoryNotificationRepository,
) -> DirectNotificationManager:
    return DirectNotificationManager(registry, preferences, repository)


@pytest.fixture
def provider() -> FakeQueueProvider:
    return FakeQueueProvider()


@pytest.fixture
def broker_config() -> BrokerConfig:
    return BrokerConfig()


@pytest.fixture
def queue_manager(
    provider: FakeQueueProvider,
    broker_config: BrokerConfig,
    registry: ChannelRegistry,
    preferences: UserPreferenceService,
    repository: InMemoryNotificationRepository,
) -> QueueBasedNotificationManager:
    return QueueBasedNotificationManager(provider, broker_config, registry, preferences, repository)


@pytest.fixture
def metrics() -> FixedMetricsCollector:
    return FixedMetricsCollector()


@pytest.fixture
def strategy() -> SmartNotificationStrategy:
    return SmartNotificationStrategy(clock=lambda: OFF_PEAK)


@pytest.fixture
def dispatcher(
    strategy: SmartNotificationStrategy,
    metrics: FixedMetricsCollector,
    repository: InMemoryNotificationRepository,
    preferences: UserPreferenceService,
    direct_manager: DirectNotificationManager,
    queue_manager: QueueBasedNotificationManager,
) -> SmartNotificationManager:
    return SmartNotificationManager(
        strategy=strategy,
        metrics=metrics,
        repository=repository,
        preferences=preferences,
        direct_manager=direct_manager,
        queue_manager=queue_manager,
        sender="noreply@example.com",
    )
