"""Tests for record, template and user models."""

from __future__ import annotations

import pytest

from qa_notify.notifications.models import (
    DEFAULT_MAX_RETRIES,
    NotificationDraft,
    NotificationPreferenceFlags,
    NotificationPriority,
    NotificationRecord,
    NotificationStatus,
    NotificationTemplate,
    User,
    UserNotificationPreferences,
    resolve_language,
)


class TestNotificationStatus:
    """Test the record lifecycle table."""

    @pytest.mark.parametrize(
        ("current", "target", "allowed"),
        [
            (NotificationStatus.PENDING, NotificationStatus.SENT, True),
            (NotificationStatus.PENDING, NotificationStatus.FAILED, True),
            (NotificationStatus.PENDING, NotificationStatus.DELIVERED, False),
            (NotificationStatus.SENT, NotificationStatus.DELIVERED, True),
            (NotificationStatus.SENT, NotificationStatus.FAILED, True),
            (NotificationStatus.SENT, NotificationStatus.PENDING, False),
            (NotificationStatus.DELIVERED, NotificationStatus.READ, True),
            (NotificationStatus.DELIVERED, NotificationStatus.FAILED, False),
            (NotificationStatus.FAILED, NotificationStatus.PENDING, True),
            (NotificationStatus.FAILED, NotificationStatus.SENT, False),
        ],
    )
    def test_transitions(
        self,
        current: NotificationStatus,
        target: NotificationStatus,
        allowed: bool,
    ) -> None:
        assert current.can_transition_to(target) is allowed

    def test_read_is_terminal(self) -> None:
        assert not any(NotificationStatus.READ.can_transition_to(status) for status in NotificationStatus)


class TestNotificationRecord:
    """Test record defaults."""

    def test_record_from_draft_starts_pending(self) -> None:
        draft = NotificationDraft(channel="email", to_address="a@example.com")

        record = NotificationRecord(id="r1", **draft.model_dump())

        assert record.status is NotificationStatus.PENDING
        assert record.retry_count == 0
        assert record.max_retries == DEFAULT_MAX_RETRIES
        assert record.priority is NotificationPriority.NORMAL
        assert record.sent_at is None
        assert record.created_at.tzinfo is not None

    def test_negative_max_retries_rejected(self) -> None:
        with pytest.raises(ValueError):
            _ = NotificationDraft(channel="email", max_retries=-1)


class TestNotificationTemplate:
    """Test localized field lookup."""

    @pytest.fixture
    def template(self) -> NotificationTemplate:
        return NotificationTemplate(
            name="greeting",
            subject={"en": "Hello", "de": "Hallo"},
            message={"en": "Hello {{name}}"},
        )

    def test_requested_locale(self, template: NotificationTemplate) -> None:
        assert template.localized("subject", "de") == "Hallo"

    def test_falls_back_to_english(self, template: NotificationTemplate) -> None:
        assert template.localized("message", "tr") == "Hello {{name}}"

    def test_missing_everywhere(self, template: NotificationTemplate) -> None:
        assert template.localized("html", "de") is None

    def test_name_required(self) -> None:
        with pytest.raises(ValueError):
            _ = NotificationTemplate(name="")


class TestUserPreferences:
    """Test the default preference policy."""

    def test_unset_flags(self) -> None:
        user = User(id="u1", email="u1@example.com")

        preferences = UserNotificationPreferences.from_user(user)

        assert preferences.email is True
        assert preferences.sms is False
        assert preferences.push is False
        assert preferences.webhook is False
        assert preferences.email_address == "u1@example.com"

    def test_explicit_flags(self) -> None:
        user = User(
            id="u1",
            phone_number="+15550000001",
            notification_preferences=NotificationPreferenceFlags(email=False, sms=True),
        )

        preferences = UserNotificationPreferences.from_user(user)

        assert preferences.email is False
        assert preferences.sms is True
        assert preferences.phone_number == "+15550000001"

    @pytest.mark.parametrize(
        ("language", "expected"),
        [("en", "en"), ("DE", "de"), ("tr", "tr"), ("fr", "tr"), (None, "tr"), ("", "tr")],
    )
    def test_resolve_language(self, language: str | None, expected: str) -> None:
        assert resolve_language(language) == expected
