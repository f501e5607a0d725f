"""Persistence contracts consumed by the dispatcher."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from qa_notify.notifications.models import (
    NotificationDraft,
    NotificationRecord,
    NotificationStats,
    NotificationStatus,
    NotificationTemplate,
    User,
)


@runtime_checkable
class UserRepository(Protocol):
    """User lookup owned by the surrounding application."""

    async def find_by_id(self, user_id: str) -> User | None:
        ...

    async def update_by_id(self, user_id: str, fields: dict[str, Any]) -> User | None:  # pyright: ignore[reportExplicitAny] # partial update
        """Apply a partial update and return the updated user, or None if unknown."""
        ...


@runtime_checkable
class NotificationRepository(Protocol):
    """Storage for notification records and templates."""

    async def create_notification(self, draft: NotificationDraft) -> NotificationRecord:
        """Persist a new record in ``pending``."""
        ...

    async def get_notification_by_id(self, notification_id: str) -> NotificationRecord | None:
        ...

    async def update_notification_status(
        self,
        notification_id: str,
        status: NotificationStatus,
        **extra: Any,  # pyright: ignore[reportExplicitAny] # message_id, error_message, error_code
    ) -> bool:
        """Move a record to ``status``.

        Returns:
            False if the record does not exist

        Raises:
            InvalidStatusTransitionError: If the transition is not allowed
        """
        ...

    async def get_notifications_by_user_id(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[NotificationRecord]:
        """Records of one user, newest first."""
        ...

    async def get_notification_stats(self, user_id: str | None = None) -> NotificationStats:
        ...

    async def delete_notification(self, notification_id: str) -> bool:
        ...

    async def create_template(self, template: NotificationTemplate) -> NotificationTemplate:
        ...

    async def update_template(self, name: str, fields: dict[str, Any]) -> NotificationTemplate:  # pyright: ignore[reportExplicitAny] # partial update
        ...

    async def delete_template(self, name: str) -> bool:
        ...

    async def get_template_by_name(self, name: str) -> NotificationTemplate:
        """Raises TemplateNotFoundError when no template has ``name``."""
        ...

    async def get_templates_by_type(self, template_type: str) -> list[NotificationTemplate]:
        ...

    async def list_templates(self, *, active_only: bool = False) -> list[NotificationTemplate]:
        ...
