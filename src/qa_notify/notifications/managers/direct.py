"""Immediate delivery through the channel registry."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from qa_notify.notifications.base.registry import ChannelRegistry
from qa_notify.notifications.exceptions import (
    ChannelNotSupportedError,
    MultiChannelDispatchError,
    NoSupportedChannelsError,
)
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


class DirectNotificationManager:
    """Sends now, in-process, fanning multi-channel payloads out concurrently.

    A multi-channel call fails as a whole if any channel fails, after every
    channel has been attempted.
    """

    def __init__(
        self,
        registry: ChannelRegistry,
        preferences: UserPreferenceService,
        repository: NotificationRepository,
    ) -> None:
        self._registry: ChannelRegistry = registry
        self._preferences: UserPreferenceService = preferences
        self._repository: NotificationRepository = repository

    @property
    def registry(self) -> ChannelRegistry:
        return self._registry

    async def notify(self, payload: NotificationPayload) -> ChannelResult:
        """Send one payload on its channel.

        Raises:
            ChannelNotSupportedError: If no channel is registered for ``payload.channel``
            ChannelDeliveryError: If the channel fails the send
        """
        if not self._registry.is_supported(payload.channel):
            raise ChannelNotSupportedError(payload.channel)

        await self._registry.send_to_channel(payload.channel, payload)
        logger.info("Direct notification sent via %s", payload.channel)
        return ChannelResult(channel=payload.channel, success=True)

    async def notify_to_multiple_channels(self, payload: MultiChannelNotificationPayload) -> list[ChannelResult]:
        """Send to every supported requested channel concurrently.

        Unsupported channels are skipped with a warning.

        Returns:
            One result per dispatched channel, all successful

        Raises:
            NoSupportedChannelsError: If none of the requested channels is registered
            MultiChannelDispatchError: If at least one channel failed
        """
        supported: list[str] = []
        for channel in payload.channels:
            if self._registry.is_supported(channel):
                supported.append(channel)
            else:
                logger.warning("Skipping unsupported channel: %s", channel)

        if not supported:
            raise NoSupportedChannelsError(payload.channels)

        outcomes = await asyncio.gather(
            *(self._registry.send_to_channel(channel, payload.for_channel(channel)) for channel in supported),
            return_exceptions=True,
        )

        results: list[ChannelResult] = []
        for channel, outcome in zip(supported, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("Channel %s failed: %s", channel, sanitize_exception(outcome))
                results.append(ChannelResult(channel=channel, success=False, error=outcome))
            else:
                logger.info("Channel %s delivered", channel)
                results.append(ChannelResult(channel=channel, success=True))

        if any(not result.success for result in results):
            raise MultiChannelDispatchError(results)
        return results

    async def notify_user(self, user_id: str, payload: MultiChannelNotificationPayload) -> list[ChannelResult]:
        """Send to a user's active channels, each at its own contact point.

        Raises:
            UserNotFoundError: If the user does not exist
            NoActiveChannelsError: If the user has no usable channel
            NoSupportedChannelsError: If none of the active channels is registered
            MultiChannelDispatchError: If at least one channel failed
        """
        user = await self._preferences.get_user(user_id)
        prepared = self._preferences.build_user_payload(user, payload)
        return await self.notify_to_multiple_channels(prepared)

    async def notify_user_with_template(
        self,
        user_id: str,
        template_name: str,
        variables: Mapping[str, object] | None = None,
        locale: str | None = None,
    ) -> list[ChannelResult]:
        """Render a stored template in the user's language and send it.

        ``locale`` defaults to the user's language; missing translations fall
        back to English.

        Raises:
            TemplateNotFoundError: If the template does not exist
            TemplateInactiveError: If the template is disabled
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
        return await self.notify_to_multiple_channels(prepared)
