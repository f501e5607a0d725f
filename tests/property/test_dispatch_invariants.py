"""Property-based tests for routing, rendering and fan-out invariants."""

from __future__ import annotations

import asyncio
import string

from hypothesis import given, settings
from hypothesis import strategies as st

from qa_notify.broker.message import queue_priority
from qa_notify.notifications.managers import DirectNotificationManager, UserPreferenceService
from qa_notify.notifications.models import (
    DeliveryStrategy,
    MultiChannelNotificationPayload,
    NotificationContext,
    NotificationPriority,
    NotificationType,
    SystemMetrics,
    TimeOfDay,
    UserType,
)
from qa_notify.notifications.strategy import SmartNotificationStrategy
from qa_notify.notifications.templates import render_text
from qa_notify.repositories import InMemoryNotificationRepository, InMemoryUserRepository
from tests.fixtures.notification_mocks import (
    FakeEmailChannel,
    FakePushChannel,
    FakeSmsChannel,
    FakeWebhookChannel,
    make_registry,
)

metrics_strategy = st.builds(
    SystemMetrics,
    queue_size=st.integers(min_value=0, max_value=100_000),
    response_time=st.floats(min_value=0, max_value=60_000, allow_nan=False),
    error_rate=st.floats(min_value=0, max_value=100, allow_nan=False),
    active_connections=st.integers(min_value=0, max_value=10_000),
    memory_usage=st.floats(min_value=0, max_value=100, allow_nan=False),
)

context_strategy = st.builds(
    NotificationContext,
    user_id=st.text(min_size=1, max_size=10),
    user_type=st.sampled_from(UserType),
    notification_type=st.sampled_from(NotificationType),
    priority=st.sampled_from(NotificationPriority),
    time_of_day=st.sampled_from(TimeOfDay),
)

identifiers = st.text(alphabet=string.ascii_letters, min_size=1, max_size=8)
plain_values = st.text(alphabet=string.ascii_letters + string.digits + " .,", max_size=12)

CHANNEL_FACTORIES = {
    "email": FakeEmailChannel,
    "sms": FakeSmsChannel,
    "push": FakePushChannel,
    "webhook": FakeWebhookChannel,
}


@given(context=context_strategy, metrics=metrics_strategy)
def test_critical_always_direct(context: NotificationContext, metrics: SystemMetrics) -> None:
    strategy = SmartNotificationStrategy()
    critical = NotificationContext(
        user_id=context.user_id,
        user_type=context.user_type,
        notification_type=NotificationType.CRITICAL,
        priority=context.priority,
        time_of_day=context.time_of_day,
    )

    assert strategy.get_strategy(critical, metrics) is DeliveryStrategy.DIRECT


@given(context=context_strategy, metrics=metrics_strategy)
def test_decision_is_deterministic(context: NotificationContext, metrics: SystemMetrics) -> None:
    strategy = SmartNotificationStrategy()

    assert strategy.get_strategy(context, metrics) is strategy.get_strategy(context, metrics)


@given(context=context_strategy, metrics=metrics_strategy)
def test_direct_only_for_critical_or_urgent_premium(context: NotificationContext, metrics: SystemMetrics) -> None:
    decision = SmartNotificationStrategy().get_strategy(context, metrics)

    expected_direct = context.notification_type is NotificationType.CRITICAL or (
        context.user_type is UserType.PREMIUM and context.priority is NotificationPriority.URGENT
    )
    assert (decision is DeliveryStrategy.DIRECT) == expected_direct


@given(context=context_strategy)
def test_retry_and_timeout_are_positive(context: NotificationContext) -> None:
    strategy = SmartNotificationStrategy()

    assert strategy.get_retry_attempts(context) >= 1
    assert strategy.get_timeout(context) > 0


@given(st.one_of(st.none(), st.text(max_size=10)))
def test_queue_priority_range(priority: str | None) -> None:
    assert queue_priority(priority) in {1, 5, 8, 10}


@given(st.text(alphabet=string.ascii_letters + string.digits + " .,!?", max_size=40))
def test_text_without_placeholders_unchanged(text: str) -> None:
    assert render_text(text, {"name": "Ada"}) == text


@given(st.dictionaries(identifiers, plain_values, min_size=1, max_size=4))
def test_known_placeholders_substituted(variables: dict[str, str]) -> None:
    template = " | ".join(f"{{{{{key}}}}}" for key in variables)

    rendered = render_text(template, variables)

    assert rendered == " | ".join(variables.values())
    assert "{{" not in rendered


@given(
    st.lists(st.sampled_from(list(CHANNEL_FACTORIES)), unique=True),
    st.lists(st.sampled_from([*CHANNEL_FACTORIES, "fax", "pigeon"]), min_size=1, unique=True),
)
@settings(max_examples=50)
def test_fan_out_reaches_exactly_supported_channels(registered: list[str], requested: list[str]) -> None:
    channels = {name: CHANNEL_FACTORIES[name]() for name in registered}
    manager = DirectNotificationManager(
        make_registry(*channels.values()),
        UserPreferenceService(InMemoryUserRepository()),
        InMemoryNotificationRepository(),
    )
    supported = [name for name in requested if name in channels]
    payload = MultiChannelNotificationPayload(channels=requested, to="x", message="Body")

    if not supported:
        return

    results = asyncio.run(manager.notify_to_multiple_channels(payload))

    assert [result.channel for result in results] == supported
    for name, channel in channels.items():
        assert channel.send_count == (1 if name in supported else 0)
