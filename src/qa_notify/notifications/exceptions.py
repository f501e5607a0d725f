"""Exception hierarchy for notification dispatch."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from qa_notify.notifications.models.context import ChannelResult


class NotificationError(Exception):
    """Base exception for all notification errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:  # pyright: ignore[reportExplicitAny] # flexible error context
        """Initialize NotificationError.

        Args:
            message: Error message
            context: Additional context information for debugging
        """
        super().__init__(message)
        self.context: dict[str, Any] = context or {}  # pyright: ignore[reportExplicitAny] # flexible error context


class ConfigurationError(NotificationError):
    """Raised when a component is missing configuration it needs."""


class ChannelRegistryError(NotificationError):
    """Raised by the channel registry."""


class ChannelNotRegisteredError(ChannelRegistryError):
    """Raised when no channel is registered under a type."""

    def __init__(self, channel: str) -> None:
        super().__init__(f"Channel '{channel}' is not registered", {"channel": channel})
        self.channel: str = channel


class ChannelNotSupportedError(NotificationError):
    """Raised when a payload targets a channel nobody can deliver."""

    def __init__(self, channel: str) -> None:
        super().__init__(f"Channel '{channel}' is not supported", {"channel": channel})
        self.channel: str = channel


class ChannelDeliveryError(NotificationError):
    """Raised by a channel when the external transport rejects a send."""

    def __init__(self, channel: str, reason: str) -> None:
        super().__init__(f"Delivery via {channel} failed: {reason}", {"channel": channel})
        self.channel: str = channel
        self.reason: str = reason


class NoSupportedChannelsError(NotificationError):
    """Raised when a fan-out resolves to zero dispatchable channels."""

    def __init__(self, requested: list[str]) -> None:
        super().__init__(
            f"No supported channels among {requested}",
            {"requested": list(requested)},
        )
        self.requested: list[str] = list(requested)


class NoActiveChannelsError(NotificationError):
    """Raised when a user has no channel that is both enabled and reachable."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            f"No active notification channels for user {user_id}",
            {"user_id": user_id},
        )
        self.user_id: str = user_id


class UserNotFoundError(NotificationError):
    """Raised when the user lookup returns nothing."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} not found", {"user_id": user_id})
        self.user_id: str = user_id


class MultiChannelDispatchError(NotificationError):
    """Raised after a fan-out in which at least one channel failed."""

    def __init__(self, results: list[ChannelResult]) -> None:
        failed = [result for result in results if not result.success]
        details = "; ".join(f"{result.channel}: {result.error}" for result in failed)
        super().__init__(
            f"{len(failed)} of {len(results)} channels failed ({details})",
            {"failed_channels": [result.channel for result in failed]},
        )
        self.results: list[ChannelResult] = results

    @property
    def failed_channels(self) -> list[str]:
        """Channels whose send raised."""
        return [result.channel for result in self.results if not result.success]


class DispatchCancelledError(NotificationError):
    """Recorded on notifications whose dispatch was cancelled before it settled."""

    def __init__(self, strategy: str) -> None:
        super().__init__(f"{strategy} dispatch was cancelled before completion", {"strategy": strategy})
        self.strategy: str = strategy


class TemplateError(NotificationError):
    """Base exception for template problems."""


class TemplateNotFoundError(TemplateError):
    """Raised when no template exists under a name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Template '{name}' not found", {"template": name})
        self.name: str = name


class TemplateInactiveError(TemplateError):
    """Raised when a template exists but is disabled."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Template '{name}' is not active", {"template": name})
        self.name: str = name


class TemplateRenderError(TemplateError):
    """Raised when a template has no content for the requested locale."""


class NotificationNotFoundError(NotificationError):
    """Raised when a notification record id is unknown."""

    def __init__(self, notification_id: str) -> None:
        super().__init__(
            f"Notification {notification_id} not found",
            {"notification_id": notification_id},
        )
        self.notification_id: str = notification_id


class InvalidStatusTransitionError(NotificationError):
    """Raised when a status update violates the record lifecycle."""

    def __init__(self, notification_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move notification {notification_id} from {current} to {target}",
            {"notification_id": notification_id, "current": current, "target": target},
        )


class BrokerError(NotificationError):
    """Base exception for message broker failures."""


class BrokerConnectionError(BrokerError):
    """Raised when the broker cannot be reached or is not connected."""


class QueuePublishError(BrokerError):
    """Raised when the broker does not accept a published message."""
