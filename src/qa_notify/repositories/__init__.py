"""Persistence boundary for users, notification records and templates."""

from __future__ import annotations

from .memory import InMemoryNotificationRepository, InMemoryUserRepository
from .protocols import NotificationRepository, UserRepository

__all__ = [
    "InMemoryNotificationRepository",
    "InMemoryUserRepository",
    "NotificationRepository",
    "UserRepository",
]
