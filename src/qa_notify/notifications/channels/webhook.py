"""Webhook channel posting JSON to a user-supplied URL."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import ClassVar, override

import aiohttp

from qa_notify.notifications.base.channel import Channel
from qa_notify.notifications.base.retry import CircuitBreakerError
from qa_notify.notifications.exceptions import ChannelDeliveryError
from qa_notify.notifications.models import ChannelType, NotificationPayload
from qa_notify.utils.http_client import HTTPClient, HTTPRequestError
from qa_notify.utils.sanitization import sanitize_exception, sanitize_url

logger = logging.getLogger(__name__)


class WebhookChannel(Channel):
    """Delivers the payload as JSON; any 2xx or 3xx answer is success."""

    type: ClassVar[str] = ChannelType.WEBHOOK.value
    display_name: ClassVar[str] = "Webhook"

    def __init__(self, http_client: HTTPClient, enabled: bool = True) -> None:
        super().__init__(enabled=enabled)
        self._http_client: HTTPClient = http_client

    @override
    def validate_config(self) -> None:
        # destinations come from each payload
        return None

    @staticmethod
    def build_body(payload: NotificationPayload) -> dict[str, object]:
        return {
            "subject": payload.subject,
            "message": payload.message,
            "html": payload.html,
            "data": payload.data,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @override
    async def send(self, payload: NotificationPayload) -> None:
        if not payload.to.startswith(("http://", "https://")):
            raise ChannelDeliveryError(self.type, "webhook URL must start with http:// or https://")

        url = sanitize_url(payload.to)
        try:
            response = await self._http_client.post_with_retry(payload.to, self.build_body(payload))
        except (HTTPRequestError, CircuitBreakerError, TimeoutError, aiohttp.ClientError, ValueError) as exc:
            logger.error("Webhook to %s failed: %s", url, sanitize_exception(exc))
            raise ChannelDeliveryError(self.type, sanitize_exception(exc)) from exc

        logger.info("Webhook delivered to %s (status=%d)", url, response.status)
