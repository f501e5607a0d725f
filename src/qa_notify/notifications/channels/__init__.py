"""Concrete notification channels."""

from __future__ import annotations

from .email import EmailChannel
from .factory import build_channel_registry, create_http_client
from .push import PushChannel
from .sms import SmsChannel
from .webhook import WebhookChannel

__all__ = [
    # Channels
    "EmailChannel",
    "PushChannel",
    "SmsChannel",
    "WebhookChannel",
    # Construction
    "build_channel_registry",
    "create_http_client",
]
