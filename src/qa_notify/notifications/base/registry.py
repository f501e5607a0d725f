"""Channel registry keyed by channel type."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from qa_notify.notifications.exceptions import (
    ChannelNotRegisteredError,
    ChannelRegistryError,
)

if TYPE_CHECKING:
    from qa_notify.notifications.base.channel import Channel
    from qa_notify.notifications.models.payload import NotificationPayload

logger = logging.getLogger(__name__)


class ChannelRegistry:
    """Holds the registered channels and routes payloads to them."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._channels: dict[str, Channel] = {}

    def register(self, channel: Channel, replace: bool = False) -> None:
        """Register a channel under its type.

        Args:
            channel: Channel instance to register
            replace: Whether to overwrite an existing registration

        Raises:
            ChannelRegistryError: If the type is taken and replace is False
        """
        channel_type = channel.type
        if channel_type in self._channels and not replace:
            raise ChannelRegistryError(
                f"Channel '{channel_type}' is already registered",
                {"channel": channel_type},
            )
        self._channels[channel_type] = channel
        logger.info("Registered channel: %s (%s)", channel_type, channel.display_name)

    def unregister(self, channel_type: str) -> None:
        """Remove a channel.

        Args:
            channel_type: Type of the channel to remove

        Raises:
            ChannelNotRegisteredError: If nothing is registered under the type
        """
        if channel_type not in self._channels:
            raise ChannelNotRegisteredError(channel_type)
        del self._channels[channel_type]
        logger.info("Unregistered channel: %s", channel_type)

    def get(self, channel_type: str) -> Channel | None:
        """Look up a channel by type."""
        return self._channels.get(channel_type)

    def list_types(self) -> list[str]:
        """List registered channel types in registration order."""
        return list(self._channels)

    def is_supported(self, channel_type: str) -> bool:
        """Check whether a channel is registered under ``channel_type``."""
        return channel_type in self._channels

    async def send_to_channel(self, channel_type: str, payload: NotificationPayload) -> None:
        """Send a payload through the channel registered under a type.

        Args:
            channel_type: Type of the target channel
            payload: Payload to deliver

        Raises:
            ChannelNotRegisteredError: If no channel is registered under the type
            ChannelDeliveryError: If the channel fails the send
        """
        channel = self._channels.get(channel_type)
        if channel is None:
            raise ChannelNotRegisteredError(channel_type)

        logger.debug("Sending via %s to %s", channel_type, payload.to)
        await channel.send(payload)

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, channel_type: object) -> bool:
        return channel_type in self._channels
