"""In-process repositories for development, the CLI and tests."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from qa_notify.notifications.exceptions import (
    InvalidStatusTransitionError,
    NotificationError,
    TemplateNotFoundError,
)
from qa_notify.notifications.models import (
    NotificationDraft,
    NotificationRecord,
    NotificationStats,
    NotificationStatus,
    NotificationTemplate,
    User,
)
from qa_notify.notifications.models.records import utcnow

logger = logging.getLogger(__name__)

_STATUS_TIMESTAMPS: dict[NotificationStatus, str] = {
    NotificationStatus.SENT: "sent_at",
    NotificationStatus.DELIVERED: "delivered_at",
    NotificationStatus.READ: "read_at",
}

_UPDATABLE_EXTRA_FIELDS: frozenset[str] = frozenset({"message_id", "error_message", "error_code"})


class InMemoryUserRepository:
    """Dict-backed user store."""

    def __init__(self, users: Iterable[User] = ()) -> None:
        self._users: dict[str, User] = {user.id: user for user in users}

    def add(self, user: User) -> None:
        self._users[user.id] = user

    async def find_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def update_by_id(self, user_id: str, fields: dict[str, Any]) -> User | None:  # pyright: ignore[reportExplicitAny]
        user = self._users.get(user_id)
        if user is None:
            return None
        updated = User.model_validate(user.model_dump() | fields)
        self._users[user_id] = updated
        return updated


class InMemoryNotificationRepository:
    """Dict-backed record and template store enforcing the status lifecycle."""

    def __init__(self, templates: Iterable[NotificationTemplate] = ()) -> None:
        self._records: dict[str, NotificationRecord] = {}
        self._templates: dict[str, NotificationTemplate] = {}
        for template in templates:
            self._templates[template.name] = template

    async def create_notification(self, draft: NotificationDraft) -> NotificationRecord:
        record = NotificationRecord(id=uuid.uuid4().hex, **draft.model_dump())
        self._records[record.id] = record
        logger.debug("Created notification %s (channel=%s)", record.id, record.channel)
        return record

    async def get_notification_by_id(self, notification_id: str) -> NotificationRecord | None:
        return self._records.get(notification_id)

    async def update_notification_status(
        self,
        notification_id: str,
        status: NotificationStatus,
        **extra: Any,  # pyright: ignore[reportExplicitAny]
    ) -> bool:
        record = self._records.get(notification_id)
        if record is None:
            return False

        if not record.status.can_transition_to(status):
            raise InvalidStatusTransitionError(notification_id, record.status.value, status.value)

        unknown = set(extra) - _UPDATABLE_EXTRA_FIELDS
        if unknown:
            raise NotificationError(
                f"Unsupported status update fields: {', '.join(sorted(unknown))}",
                context={"notification_id": notification_id},
            )

        now = utcnow()
        changes: dict[str, Any] = {"status": status, "updated_at": now, **extra}  # pyright: ignore[reportExplicitAny]
        timestamp_field = _STATUS_TIMESTAMPS.get(status)
        if timestamp_field is not None:
            changes[timestamp_field] = now
        if status is NotificationStatus.FAILED:
            changes["retry_count"] = record.retry_count + 1

        self._records[notification_id] = record.model_copy(update=changes)
        logger.debug("Notification %s: %s -> %s", notification_id, record.status, status)
        return True

    async def get_notifications_by_user_id(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[NotificationRecord]:
        # insertion order is creation order
        records = [record for record in reversed(self._records.values()) if record.user_id == user_id]
        return records[offset:offset + limit]

    async def get_notification_stats(self, user_id: str | None = None) -> NotificationStats:
        counts = {status.value: 0 for status in NotificationStatus}
        total = 0
        for record in self._records.values():
            if user_id is not None and record.user_id != user_id:
                continue
            counts[record.status.value] += 1
            total += 1
        return NotificationStats(total=total, **counts)

    async def delete_notification(self, notification_id: str) -> bool:
        return self._records.pop(notification_id, None) is not None

    async def create_template(self, template: NotificationTemplate) -> NotificationTemplate:
        if template.name in self._templates:
            raise NotificationError(
                f"Template already exists: {template.name}",
                context={"template": template.name},
            )
        stored = template if template.id else template.model_copy(update={"id": uuid.uuid4().hex})
        self._templates[stored.name] = stored
        return stored

    async def update_template(self, name: str, fields: dict[str, Any]) -> NotificationTemplate:  # pyright: ignore[reportExplicitAny]
        current = await self.get_template_by_name(name)
        updated = NotificationTemplate.model_validate(
            current.model_dump() | fields | {"name": name, "updated_at": utcnow()}
        )
        self._templates[name] = updated
        return updated

    async def delete_template(self, name: str) -> bool:
        return self._templates.pop(name, None) is not None

    async def get_template_by_name(self, name: str) -> NotificationTemplate:
        template = self._templates.get(name)
        if template is None:
            raise TemplateNotFoundError(name)
        return template

    async def get_templates_by_type(self, template_type: str) -> list[NotificationTemplate]:
        return [template for template in self._templates.values() if template.type == template_type]

    async def list_templates(self, *, active_only: bool = False) -> list[NotificationTemplate]:
        templates = sorted(self._templates.values(), key=lambda template: template.name)
        if active_only:
            return [template for template in templates if template.is_active]
        return templates
