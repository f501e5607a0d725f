"""Payload models for outbound notifications."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, override

from pydantic import BaseModel, Field, field_validator


class ChannelType(StrEnum):
    """Channel identifiers shipped with the package."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    WEBHOOK = "webhook"


class NotificationPriority(StrEnum):
    """Priority levels carried by payloads and records."""

    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


def _normalize_channel(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError("Channel name cannot be empty")
    return normalized


class NotificationPayload(BaseModel):
    """A single outbound message attempt on one channel."""

    channel: str = Field(
        ...,
        description="Channel identifier the payload is addressed to",
    )
    to: str = Field(
        default="",
        description="Destination address (email, phone number, device token or URL)",
    )
    subject: str = Field(
        default="",
        description="Subject line or title",
    )
    message: str = Field(
        ...,
        description="Plain-text body",
    )
    html: str | None = Field(
        default=None,
        description="Optional rich body",
    )
    data: dict[str, Any] = Field(  # pyright: ignore[reportExplicitAny] # opaque bag handed to channels
        default_factory=dict,
        description="Opaque key/value bag passed to the channel",
    )

    @field_validator("channel")
    @classmethod
    def validate_channel(cls, v: str) -> str:
        """Normalize the channel identifier."""
        return _normalize_channel(v)

    @property
    def priority(self) -> str | None:
        """Priority carried in the data bag, if any."""
        value = self.data.get("priority")
        return str(value) if value is not None else None

    @override
    def __str__(self) -> str:
        return f"NotificationPayload(channel='{self.channel}', subject='{self.subject}')"


class MultiChannelNotificationPayload(BaseModel):
    """Fan-out descriptor sending the same content over several channels.

    ``recipients`` maps a channel to its own destination. Channels without an
    entry fall back to the shared ``to`` address.
    """

    channels: list[str] = Field(
        default_factory=list,
        description="Ordered channel identifiers; duplicates are dropped",
    )
    to: str = Field(
        default="",
        description="Shared destination used when no per-channel recipient is set",
    )
    recipients: dict[str, str] = Field(
        default_factory=dict,
        description="Per-channel destination overrides",
    )
    subject: str = Field(default="", description="Subject line or title")
    message: str = Field(..., description="Plain-text body")
    html: str | None = Field(default=None, description="Optional rich body")
    data: dict[str, Any] = Field(  # pyright: ignore[reportExplicitAny] # opaque bag handed to channels
        default_factory=dict,
        description="Opaque key/value bag passed to every channel",
    )
    priority: NotificationPriority | None = Field(
        default=None,
        description="Optional priority applied to every per-channel payload",
    )

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: list[str]) -> list[str]:
        """Normalize channel names and drop duplicates, keeping order."""
        seen: list[str] = []
        for channel in v:
            normalized = _normalize_channel(channel)
            if normalized not in seen:
                seen.append(normalized)
        return seen

    @field_validator("recipients")
    @classmethod
    def validate_recipients(cls, v: dict[str, str]) -> dict[str, str]:
        """Normalize recipient keys to channel identifiers."""
        return {_normalize_channel(channel): address for channel, address in v.items()}

    def destination_for(self, channel: str) -> str:
        """Resolve the destination address for a channel."""
        return self.recipients.get(channel) or self.to

    def effective_priority(self) -> str | None:
        """Priority from the data bag, falling back to the payload field."""
        value = self.data.get("priority")
        if value is not None:
            return str(value)
        return self.priority.value if self.priority is not None else None

    def for_channel(self, channel: str) -> NotificationPayload:
        """Build the single-channel payload for one fan-out branch."""
        data = dict(self.data)
        if self.priority is not None and "priority" not in data:
            data["priority"] = self.priority.value
        return NotificationPayload(
            channel=channel,
            to=self.destination_for(channel),
            subject=self.subject,
            message=self.message,
            html=self.html,
            data=data,
        )
