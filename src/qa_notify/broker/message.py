"""Broker envelope for queued notifications."""

from __future__ import annotations

import secrets
import time
from typing import Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field

MESSAGE_TYPE: Final[str] = "notification"

_QUEUE_PRIORITIES: Final[dict[str, int]] = {
    "urgent": 10,
    "high": 8,
    "normal": 5,
}
_DEFAULT_QUEUE_PRIORITY: Final[int] = 1


def queue_priority(priority: str | None) -> int:
    """Map a payload priority to the numeric broker priority.

    Examples:
        >>> queue_priority("urgent")
        10
        >>> queue_priority(None)
        1
    """
    if priority is None:
        return _DEFAULT_QUEUE_PRIORITY
    return _QUEUE_PRIORITIES.get(priority.lower(), _DEFAULT_QUEUE_PRIORITY)


def new_message_id() -> str:
    """Opaque unique id of the form ``notification_<ms>_<random>``."""
    return f"notification_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class QueueMessage(BaseModel):
    """Envelope published to the notification queue.

    ``retry_count`` travels as ``retryCount`` on the wire.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_message_id)
    type: Literal["notification"] = MESSAGE_TYPE
    data: dict[str, Any] = Field(default_factory=dict)  # pyright: ignore[reportExplicitAny] # payload plus userId/userLanguage
    timestamp: float = Field(default_factory=time.time)
    priority: int = Field(default=_DEFAULT_QUEUE_PRIORITY, ge=0, le=255)
    retry_count: int = Field(default=0, ge=0, alias="retryCount")
    metadata: dict[str, Any] = Field(default_factory=dict)  # pyright: ignore[reportExplicitAny] # advisory timeout/max_retries

    def to_bytes(self) -> bytes:
        """Encode as UTF-8 JSON."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, body: bytes) -> QueueMessage:
        """Decode a UTF-8 JSON body.

        Raises:
            pydantic.ValidationError: If the body is not a valid envelope
        """
        return cls.model_validate_json(body)

    @property
    def channels(self) -> list[str]:
        """Channels the carried payload targets."""
        if "channels" in self.data:
            return [str(channel) for channel in self.data["channels"]]  # pyright: ignore[reportAny]
        channel = self.data.get("channel")
        return [str(channel)] if channel else []
