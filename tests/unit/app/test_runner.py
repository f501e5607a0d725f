"""Tests for the application runner."""

from __future__ import annotations

import asyncio

from qa_notify.app import ApplicationRunner
from qa_notify.config.models import AppConfig, BrokerConfig, DispatchConfig, LanguageConfig, SmtpConfig
from qa_notify.notifications.channels import WebhookChannel
from qa_notify.notifications.models import MultiChannelNotificationPayload, User
from qa_notify.repositories import InMemoryNotificationRepository
from tests.fixtures.notification_mocks import FakeEmailChannel, FakeQueueProvider, make_registry


def make_runner(config: AppConfig | None = None, provider: FakeQueueProvider | None = None) -> ApplicationRunner:
    return ApplicationRunner(
        config or AppConfig(),
        provider=provider or FakeQueueProvider(),
        registry=make_registry(FakeEmailChannel()),
    )


async def test_builds_registry_from_config() -> None:
    runner = ApplicationRunner(
        AppConfig(smtp=SmtpConfig(enabled=False)),
        provider=FakeQueueProvider(),
    )

    assert runner.registry.list_types() == ["webhook"]
    assert isinstance(runner.registry.get("webhook"), WebhookChannel)
    await runner.close()


async def test_start_seeds_templates_without_connecting() -> None:
    provider = FakeQueueProvider()
    runner = make_runner(provider=provider)

    await runner.start()

    assert isinstance(runner.repository, InMemoryNotificationRepository)
    assert len(await runner.repository.list_templates()) == 6
    assert provider.connect_calls == 0
    await runner.close()


async def test_start_twice_does_not_duplicate_templates() -> None:
    runner = make_runner()

    await runner.start()
    await runner.start()

    assert len(await runner.repository.list_templates()) == 6
    await runner.close()


async def test_eager_connect_declares_topology() -> None:
    provider = FakeQueueProvider()
    runner = make_runner(AppConfig(broker=BrokerConfig(eager_connect=True)), provider)

    async with runner:
        assert provider.connected
        assert {"notifications", "notifications.dlq"} <= set(provider.queues)

    assert provider.connected is False


async def test_sender_address_reaches_records() -> None:
    config = AppConfig(dispatch=DispatchConfig(sender="alerts@example.com"))
    runner = make_runner(config)

    async with runner:
        receipt = await runner.dispatcher.notify_to_multiple_channels(
            MultiChannelNotificationPayload(channels=["email"], to="a@example.com", message="Hi"),
        )
        record = await runner.repository.get_notification_by_id(receipt.record_ids[0])

    assert record is not None
    assert record.from_address == "alerts@example.com"


async def test_language_config_reaches_preferences() -> None:
    runner = make_runner(AppConfig(languages=LanguageConfig(supported=["en", "de"], default="en")))

    assert runner.preferences.language_for(User(id="u1")) == "en"
    assert runner.preferences.language_for(User(id="u2", language="tr")) == "en"
    assert runner.preferences.language_for(User(id="u3", language="de")) == "de"
    await runner.close()


async def test_worker_consumes_until_shutdown() -> None:
    provider = FakeQueueProvider()
    runner = make_runner(provider=provider)

    worker = asyncio.create_task(runner.run_worker())
    for _ in range(50):
        if provider.consumers:
            break
        await asyncio.sleep(0)

    assert len(provider.consumers) == 1
    runner.request_shutdown()
    await asyncio.wait_for(worker, timeout=1.0)

    assert provider.consumers == {}
    assert provider.connected is False
