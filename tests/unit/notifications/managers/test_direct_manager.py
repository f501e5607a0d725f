"""Tests for the direct notification manager."""

from __future__ import annotations

import pytest

from qa_notify.notifications.exceptions import (
    ChannelDeliveryError,
    ChannelNotSupportedError,
    MultiChannelDispatchError,
    NoActiveChannelsError,
    NoSupportedChannelsError,
    TemplateInactiveError,
    TemplateNotFoundError,
    UserNotFoundError,
)
from qa_notify.notifications.managers import DirectNotificationManager, UserPreferenceService
from qa_notify.notifications.models import MultiChannelNotificationPayload, NotificationPayload
from qa_notify.repositories import InMemoryNotificationRepository
from tests.fixtures.notification_mocks import (
    FakeEmailChannel,
    FakePushChannel,
    FakeSmsChannel,
    FakeWebhookChannel,
    delivery_error,
    make_registry,
)


class TestNotify:
    """Test single-channel sends."""

    async def test_sends_on_registered_channel(
        self,
        direct_manager: DirectNotificationManager,
        email_channel: FakeEmailChannel,
    ) -> None:
        payload = NotificationPayload(channel="email", to="a@example.com", subject="Hi", message="Body")

        result = await direct_manager.notify(payload)

        assert result.channel == "email"
        assert result.success is True
        assert result.error is None
        assert email_channel.sent == [payload]

    async def test_unknown_channel(self, direct_manager: DirectNotificationManager) -> None:
        with pytest.raises(ChannelNotSupportedError) as exc_info:
            _ = await direct_manager.notify(NotificationPayload(channel="fax", message="Body"))

        assert exc_info.value.channel == "fax"

    async def test_channel_failure_propagates(
        self,
        preferences: UserPreferenceService,
        repository: InMemoryNotificationRepository,
    ) -> None:
        manager = DirectNotificationManager(
            make_registry(FakeEmailChannel(fail_with=delivery_error("email", "mailbox full"))),
            preferences,
            repository,
        )

        with pytest.raises(ChannelDeliveryError, match="mailbox full"):
            _ = await manager.notify(NotificationPayload(channel="email", to="a@example.com", message="Body"))


class TestNotifyToMultipleChannels:
    """Test concurrent fan-out."""

    async def test_all_channels_succeed(
        self,
        direct_manager: DirectNotificationManager,
        email_channel: FakeEmailChannel,
        sms_channel: FakeSmsChannel,
    ) -> None:
        payload = MultiChannelNotificationPayload(
            channels=["email", "sms"],
            recipients={"email": "a@example.com", "sms": "+15550000001"},
            message="Body",
        )

        results = await direct_manager.notify_to_multiple_channels(payload)

        assert [(result.channel, result.success) for result in results] == [("email", True), ("sms", True)]
        assert email_channel.sent[0].to == "a@example.com"
        assert sms_channel.sent[0].to == "+15550000001"

    async def test_unsupported_channels_skipped(
        self,
        preferences: UserPreferenceService,
        repository: InMemoryNotificationRepository,
    ) -> None:
        email = FakeEmailChannel()
        manager = DirectNotificationManager(make_registry(email), preferences, repository)
        payload = MultiChannelNotificationPayload(channels=["fax", "email"], to="a@example.com", message="Body")

        results = await manager.notify_to_multiple_channels(payload)

        assert [result.channel for result in results] == ["email"]
        assert email.send_count == 1

    async def test_no_supported_channel(self, direct_manager: DirectNotificationManager) -> None:
        payload = MultiChannelNotificationPayload(channels=["fax", "pigeon"], message="Body")

        with pytest.raises(NoSupportedChannelsError) as exc_info:
            _ = await direct_manager.notify_to_multiple_channels(payload)

        assert exc_info.value.requested == ["fax", "pigeon"]

    async def test_empty_channel_list(
        self,
        direct_manager: DirectNotificationManager,
        email_channel: FakeEmailChannel,
        sms_channel: FakeSmsChannel,
        push_channel: FakePushChannel,
        webhook_channel: FakeWebhookChannel,
    ) -> None:
        with pytest.raises(NoSupportedChannelsError) as exc_info:
            _ = await direct_manager.notify_to_multiple_channels(MultiChannelNotificationPayload(message="Body"))

        assert exc_info.value.requested == []
        channels = (email_channel, sms_channel, push_channel, webhook_channel)
        assert [channel.send_count for channel in channels] == [0, 0, 0, 0]

    async def test_one_failure_fails_whole_call_after_every_attempt(
        self,
        preferences: UserPreferenceService,
        repository: InMemoryNotificationRepository,
    ) -> None:
        email = FakeEmailChannel()
        sms = FakeSmsChannel(fail_with=delivery_error("sms", "carrier rejected"))
        push = FakePushChannel(delay=0.01)
        manager = DirectNotificationManager(make_registry(email, sms, push), preferences, repository)
        payload = MultiChannelNotificationPayload(channels=["email", "sms", "push"], to="x", message="Body")

        with pytest.raises(MultiChannelDispatchError) as exc_info:
            _ = await manager.notify_to_multiple_channels(payload)

        error = exc_info.value
        assert error.failed_channels == ["sms"]
        assert [result.success for result in error.results] == [True, False, True]
        assert isinstance(error.results[1].error, ChannelDeliveryError)
        assert email.send_count == 1
        assert push.send_count == 1
        assert sms.attempts == 1

    async def test_non_delivery_exceptions_are_collected(
        self,
        preferences: UserPreferenceService,
        repository: InMemoryNotificationRepository,
    ) -> None:
        webhook = FakeWebhookChannel(fail_with=RuntimeError("unexpected"))
        manager = DirectNotificationManager(make_registry(FakeEmailChannel(), webhook), preferences, repository)
        payload = MultiChannelNotificationPayload(channels=["email", "webhook"], to="x", message="Body")

        with pytest.raises(MultiChannelDispatchError) as exc_info:
            _ = await manager.notify_to_multiple_channels(payload)

        assert exc_info.value.failed_channels == ["webhook"]


class TestNotifyUser:
    """Test user-addressed sends."""

    async def test_uses_active_channels_and_contact_points(
        self,
        direct_manager: DirectNotificationManager,
        email_channel: FakeEmailChannel,
        sms_channel: FakeSmsChannel,
        push_channel: FakePushChannel,
    ) -> None:
        payload = MultiChannelNotificationPayload(subject="Hi", message="Body")

        results = await direct_manager.notify_user("user-ada", payload)

        assert [result.channel for result in results] == ["email", "sms"]
        assert email_channel.sent[0].to == "ada@example.com"
        assert sms_channel.sent[0].to == "+15550000001"
        assert email_channel.sent[0].data["userId"] == "user-ada"
        assert email_channel.sent[0].data["userLanguage"] == "en"
        assert push_channel.sent == []

    async def test_requested_channels_restrict(
        self,
        direct_manager: DirectNotificationManager,
        email_channel: FakeEmailChannel,
        sms_channel: FakeSmsChannel,
    ) -> None:
        payload = MultiChannelNotificationPayload(channels=["sms"], message="Body")

        results = await direct_manager.notify_user("user-ada", payload)

        assert [result.channel for result in results] == ["sms"]
        assert email_channel.sent == []

    async def test_unknown_user(self, direct_manager: DirectNotificationManager) -> None:
        with pytest.raises(UserNotFoundError):
            _ = await direct_manager.notify_user("nobody", MultiChannelNotificationPayload(message="Body"))

    async def test_user_without_active_channels(
        self,
        direct_manager: DirectNotificationManager,
        email_channel: FakeEmailChannel,
    ) -> None:
        with pytest.raises(NoActiveChannelsError):
            _ = await direct_manager.notify_user("user-silent", MultiChannelNotificationPayload(message="Body"))

        assert email_channel.sent == []


class TestNotifyUserWithTemplate:
    """Test template-backed sends."""

    async def test_renders_in_user_language(
        self,
        direct_manager: DirectNotificationManager,
        email_channel: FakeEmailChannel,
    ) -> None:
        _ = await direct_manager.notify_user_with_template(
            "user-ada",
            "welcome-email",
            {"userName": "Ada", "userEmail": "ada@example.com", "registrationDate": "2026-01-05"},
        )

        sent = email_channel.sent[0]
        assert sent.subject == "Welcome to QA System!"
        assert sent.message.startswith("Hello Ada,")
        assert sent.html is not None
        assert "2026-01-05" in sent.html
        assert sent.data["templateName"] == "welcome-email"
        assert sent.data["priority"] == "normal"

    async def test_default_language_is_turkish(
        self,
        direct_manager: DirectNotificationManager,
        email_channel: FakeEmailChannel,
    ) -> None:
        _ = await direct_manager.notify_user_with_template("user-grace", "account-verified", {"userName": "Grace"})

        assert email_channel.sent[0].subject == "Hesabınız Doğrulandı"

    async def test_locale_override(
        self,
        direct_manager: DirectNotificationManager,
        sms_channel: FakeSmsChannel,
    ) -> None:
        _ = await direct_manager.notify_user_with_template(
            "user-ada",
            "password-reset",
            {"userName": "Ada", "resetLink": "https://qa.example.com/reset"},
            locale="de",
        )

        assert sms_channel.sent[0].subject == "Passwort-Reset-Anfrage"
        assert sms_channel.sent[0].data["priority"] == "high"

    async def test_unknown_template(self, direct_manager: DirectNotificationManager) -> None:
        with pytest.raises(TemplateNotFoundError):
            _ = await direct_manager.notify_user_with_template("user-ada", "missing")

    async def test_inactive_template(
        self,
        direct_manager: DirectNotificationManager,
        repository: InMemoryNotificationRepository,
        email_channel: FakeEmailChannel,
    ) -> None:
        _ = await repository.update_template("welcome-email", {"is_active": False})

        with pytest.raises(TemplateInactiveError):
            _ = await direct_manager.notify_user_with_template("user-ada", "welcome-email")

        assert email_channel.sent == []
