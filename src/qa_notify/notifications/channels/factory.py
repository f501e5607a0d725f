"""Build the channel registry from application configuration."""

from __future__ import annotations

import logging
from collections.abc import Callable

from qa_notify.config.models import AppConfig
from qa_notify.notifications.base.channel import Channel
from qa_notify.notifications.base.registry import ChannelRegistry
from qa_notify.notifications.channels.email import EmailChannel
from qa_notify.notifications.channels.push import PushChannel
from qa_notify.notifications.channels.sms import SmsChannel
from qa_notify.notifications.channels.webhook import WebhookChannel
from qa_notify.notifications.exceptions import ConfigurationError
from qa_notify.utils.http_client import AIOHTTPClient, HTTPClient

logger = logging.getLogger(__name__)


def create_http_client(config: AppConfig) -> AIOHTTPClient:
    """HTTP client for the webhook channel, tuned from ``config.webhook``."""
    return AIOHTTPClient(
        max_retries=config.webhook.max_retries,
        max_backoff_seconds=config.webhook.max_backoff,
        timeout_seconds=config.webhook.timeout,
        circuit_breaker_threshold=config.webhook.circuit_breaker_threshold,
        circuit_breaker_cooldown_seconds=config.webhook.circuit_breaker_cooldown,
    )


def build_channel_registry(
    config: AppConfig,
    *,
    http_client: HTTPClient | None = None,
    strict: bool = False,
) -> ChannelRegistry:
    """Register every enabled channel whose configuration is complete.

    Args:
        config: Application configuration
        http_client: Client for the webhook channel; created from config when omitted
        strict: Raise instead of skipping an enabled but incomplete channel

    Returns:
        Registry holding the usable channels

    Raises:
        ConfigurationError: If ``strict`` and an enabled channel is incomplete
    """
    builders: list[tuple[str, bool, Callable[[], Channel]]] = [
        ("email", config.smtp.enabled, lambda: EmailChannel(config.smtp)),
        ("sms", config.sms.enabled, lambda: SmsChannel(config.sms)),
        ("push", config.push.enabled, lambda: PushChannel(config.push)),
        (
            "webhook",
            config.webhook.enabled,
            lambda: WebhookChannel(http_client or create_http_client(config)),
        ),
    ]

    registry = ChannelRegistry()
    for name, enabled, build in builders:
        if not enabled:
            logger.debug("Channel %s is disabled", name)
            continue
        try:
            channel = build()
        except ConfigurationError as exc:
            if strict:
                raise
            logger.warning("Skipping channel %s: %s", name, exc)
            continue
        registry.register(channel)

    logger.info("Channel registry ready with: %s", ", ".join(registry.list_types()) or "no channels")
    return registry
