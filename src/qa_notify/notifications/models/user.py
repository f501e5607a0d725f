"""User-facing models consumed by the notification subsystem."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field


SUPPORTED_LANGUAGES: tuple[str, ...] = ("tr", "en", "de")
DEFAULT_LANGUAGE: str = "tr"


class NotificationPreferenceFlags(BaseModel):
    """Opt-in flags as stored on the user record.

    ``None`` means the user never set the flag.
    """

    email: bool | None = None
    push: bool | None = None
    sms: bool | None = None
    webhook: bool | None = None


class User(BaseModel):
    """The slice of a user record the dispatcher needs."""

    id: str
    email: str | None = None
    phone_number: str | None = None
    webhook_url: str | None = None
    push_token: str | None = None
    language: str | None = None
    role: str = "user"
    is_premium: bool = False
    subscription_type: str | None = None
    notification_preferences: NotificationPreferenceFlags = Field(
        default_factory=NotificationPreferenceFlags,
    )


class UserNotificationPreferences(BaseModel):
    """Resolved preferences: flags with defaults applied plus contact points."""

    email: bool = True
    push: bool = False
    sms: bool = False
    webhook: bool = False
    email_address: str | None = None
    phone_number: str | None = None
    webhook_url: str | None = None
    push_token: str | None = None

    @classmethod
    def from_user(cls, user: User) -> UserNotificationPreferences:
        """Apply the default policy to a user's stored flags.

        Email is enabled unless explicitly disabled; every other channel is
        disabled unless explicitly enabled.
        """
        flags = user.notification_preferences
        return cls(
            email=flags.email if flags.email is not None else True,
            push=bool(flags.push),
            sms=bool(flags.sms),
            webhook=bool(flags.webhook),
            email_address=user.email,
            phone_number=user.phone_number,
            webhook_url=user.webhook_url,
            push_token=user.push_token,
        )


def resolve_language(
    language: str | None,
    supported: Sequence[str] = SUPPORTED_LANGUAGES,
    default: str = DEFAULT_LANGUAGE,
) -> str:
    """Return a supported language code, ``default`` when unknown."""
    if language and language.lower() in supported:
        return language.lower()
    return default
