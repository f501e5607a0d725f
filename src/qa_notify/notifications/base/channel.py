"""Abstract base class for notification channels."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from qa_notify.notifications.models.payload import NotificationPayload


class Channel(ABC):
    """A named transport able to deliver one payload.

    Subclasses set ``type`` and ``display_name`` as class attributes; both are
    fixed for the lifetime of the class.
    """

    type: ClassVar[str]
    display_name: ClassVar[str]

    def __init__(self, enabled: bool = True) -> None:
        """Initialize the channel.

        Args:
            enabled: Whether the channel accepts sends
        """
        self.enabled: bool = enabled

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> None:
        """Deliver a payload through the external transport.

        Args:
            payload: The payload to deliver

        Raises:
            ChannelDeliveryError: If the transport rejects or fails the send
        """
        ...

    @abstractmethod
    def validate_config(self) -> None:
        """Validate the channel configuration.

        Raises:
            ConfigurationError: If required settings are missing
        """
        ...

    def is_enabled(self) -> bool:
        """Check if the channel is enabled."""
        return self.enabled

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type='{self.type}', enabled={self.enabled})"
