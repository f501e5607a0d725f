"""User preference lookup and active channel resolution."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from qa_notify.notifications.exceptions import NoActiveChannelsError, UserNotFoundError
from qa_notify.notifications.models import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    ChannelType,
    MultiChannelNotificationPayload,
    NotificationPreferenceFlags,
    User,
    UserNotificationPreferences,
    resolve_language,
)
from qa_notify.repositories.protocols import UserRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ActiveChannels:
    """Channels a user can be reached on, with one destination each."""

    channels: list[str] = field(default_factory=list)
    recipients: dict[str, str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.channels)


def resolve_active_channels(preferences: UserNotificationPreferences) -> ActiveChannels:
    """Intersect opt-in flags with available contact points.

    A channel is active only when its flag is set and the matching contact
    point is non-empty. Order is email, sms, push, webhook.
    """
    candidates: list[tuple[ChannelType, bool, str | None]] = [
        (ChannelType.EMAIL, preferences.email, preferences.email_address),
        (ChannelType.SMS, preferences.sms, preferences.phone_number),
        (ChannelType.PUSH, preferences.push, preferences.push_token),
        (ChannelType.WEBHOOK, preferences.webhook, preferences.webhook_url),
    ]
    active = ActiveChannels()
    for channel, enabled, destination in candidates:
        if enabled and destination:
            active.channels.append(channel.value)
            active.recipients[channel.value] = destination
    return active


class UserPreferenceService:
    """Reads and updates the notification preferences stored on users.

    Also owns the locale policy: a user's language is used when it is one of
    ``supported_languages``, otherwise ``default_language``.
    """

    def __init__(
        self,
        users: UserRepository,
        *,
        supported_languages: Sequence[str] = SUPPORTED_LANGUAGES,
        default_language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self._users: UserRepository = users
        self._supported_languages: tuple[str, ...] = tuple(code.lower() for code in supported_languages)
        self._default_language: str = default_language.lower()

    def language_for(self, user: User) -> str:
        """The locale to render and deliver in for ``user``."""
        return resolve_language(user.language, self._supported_languages, self._default_language)

    async def get_user(self, user_id: str) -> User:
        """Look up a user.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def get_user_notification_preferences(self, user_id: str) -> UserNotificationPreferences:
        return UserNotificationPreferences.from_user(await self.get_user(user_id))

    async def update_user_notification_preferences(
        self,
        user_id: str,
        preferences: NotificationPreferenceFlags,
    ) -> UserNotificationPreferences:
        """Merge the set flags into the stored ones and persist them.

        Flags left as ``None`` keep their stored value.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = await self.get_user(user_id)
        merged = user.notification_preferences.model_copy(
            update=preferences.model_dump(exclude_none=True),
        )
        updated = await self._users.update_by_id(
            user_id,
            {"notification_preferences": merged.model_dump()},
        )
        if updated is None:
            raise UserNotFoundError(user_id)
        logger.info("Updated notification preferences for user %s", user_id)
        return UserNotificationPreferences.from_user(updated)

    def build_user_payload(
        self,
        user: User,
        payload: MultiChannelNotificationPayload,
    ) -> MultiChannelNotificationPayload:
        """Address a payload to a user's active channels.

        When ``payload.channels`` is non-empty only those channels are kept.
        The user id and resolved language are added to ``data``.

        Raises:
            NoActiveChannelsError: If no channel remains
        """
        active = resolve_active_channels(UserNotificationPreferences.from_user(user))
        channels = active.channels
        if payload.channels:
            channels = [channel for channel in channels if channel in payload.channels]
        if not channels:
            raise NoActiveChannelsError(user.id)

        data = dict(payload.data)
        data["userId"] = user.id
        data["userLanguage"] = self.language_for(user)
        logger.debug("User %s active channels: %s", user.id, ", ".join(channels))
        return payload.model_copy(
            update={
                "channels": channels,
                "recipients": {channel: active.recipients[channel] for channel in channels},
                "data": data,
            },
        )
