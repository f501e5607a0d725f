"""Persisted notification records and templates."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Final

from pydantic import BaseModel, Field

from qa_notify.notifications.models.payload import NotificationPriority


DEFAULT_MAX_RETRIES: Final[int] = 3
FALLBACK_LOCALE: Final[str] = "en"


class NotificationStatus(StrEnum):
    """Lifecycle states of a notification record."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    DELIVERED = "delivered"
    READ = "read"

    def can_transition_to(self, target: NotificationStatus) -> bool:
        """Check whether moving to ``target`` is a legal transition."""
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: Final[dict[NotificationStatus, frozenset[NotificationStatus]]] = {
    NotificationStatus.PENDING: frozenset({NotificationStatus.SENT, NotificationStatus.FAILED}),
    NotificationStatus.SENT: frozenset({NotificationStatus.DELIVERED, NotificationStatus.FAILED}),
    NotificationStatus.DELIVERED: frozenset({NotificationStatus.READ}),
    NotificationStatus.READ: frozenset(),
    # manual retry of a failed record
    NotificationStatus.FAILED: frozenset({NotificationStatus.PENDING}),
}


class DeliveryStrategy(StrEnum):
    """How a notification was handed to its channels."""

    DIRECT = "direct"
    QUEUE = "queue"


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


class NotificationDraft(BaseModel):
    """Fields supplied by the caller when creating a record."""

    channel: str
    user_id: str | None = None
    subject: str = ""
    message: str = ""
    html: str | None = None
    from_address: str | None = None
    to_address: str = ""
    strategy: DeliveryStrategy | None = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    template_name: str | None = None
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    tags: list[str] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)  # pyright: ignore[reportExplicitAny] # opaque payload data


class NotificationRecord(NotificationDraft):
    """Durable audit entity tracking one dispatch attempt."""

    id: str
    status: NotificationStatus = NotificationStatus.PENDING
    message_id: str | None = None
    retry_count: int = 0
    error_message: str | None = None
    error_code: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    read_at: datetime | None = None


class NotificationStats(BaseModel):
    """Record counts, overall and per status."""

    total: int = 0
    pending: int = 0
    sent: int = 0
    failed: int = 0
    delivered: int = 0
    read: int = 0


class NotificationTemplate(BaseModel):
    """Reusable localized message content keyed by ``name``."""

    id: str | None = None
    name: str = Field(..., min_length=1)
    type: str = "email"
    category: str = "notification"
    subject: dict[str, str] = Field(default_factory=dict)
    message: dict[str, str] = Field(default_factory=dict)
    html: dict[str, str] = Field(default_factory=dict)
    variables: list[str] = Field(default_factory=list)
    is_active: bool = True
    priority: NotificationPriority = NotificationPriority.NORMAL
    description: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def localized(self, field: str, locale: str, fallback: str = FALLBACK_LOCALE) -> str | None:
        """Pick the ``locale`` variant of a localized field.

        Args:
            field: One of ``subject``, ``message`` or ``html``
            locale: Requested locale
            fallback: Locale used when the requested one is missing

        Returns:
            The localized text, or None if neither locale is present
        """
        texts: dict[str, str] = getattr(self, field)
        if locale in texts:
            return texts[locale]
        return texts.get(fallback)
