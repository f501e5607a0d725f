"""Push channel through an HTTP push gateway."""

from __future__ import annotations

import logging
from typing import ClassVar, override

import httpx

from qa_notify.config.models import PushConfig
from qa_notify.notifications.base.channel import Channel
from qa_notify.notifications.base.retry import CircuitBreaker, CircuitBreakerError
from qa_notify.notifications.exceptions import ChannelDeliveryError, ConfigurationError
from qa_notify.notifications.models import ChannelType, NotificationPayload

logger = logging.getLogger(__name__)


class PushChannel(Channel):
    """POSTs device notifications to a gateway, behind a circuit breaker."""

    type: ClassVar[str] = ChannelType.PUSH.value
    display_name: ClassVar[str] = "Push"

    def __init__(
        self,
        config: PushConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the channel.

        Args:
            config: Gateway endpoint and credentials
            transport: Custom httpx transport, mainly for tests

        Raises:
            ConfigurationError: If the gateway URL or API key is missing
        """
        super().__init__(enabled=config.enabled)
        self._config: PushConfig = config
        self._gateway_url: str
        self._api_key: str
        self._gateway_url, self._api_key = self._credentials()
        self._transport: httpx.AsyncBaseTransport | None = transport
        self._breaker: CircuitBreaker = CircuitBreaker(
            name="push-gateway",
            failure_threshold=config.circuit_breaker_threshold,
            recovery_timeout=config.circuit_breaker_cooldown,
        )

    def _credentials(self) -> tuple[str, str]:
        url, key = self._config.gateway_url, self._config.api_key
        if not url or not key:
            raise ConfigurationError(
                "Push gateway URL and API key are required for the push channel",
                context={"channel": self.type},
            )
        return url, key

    @override
    def validate_config(self) -> None:
        _ = self._credentials()

    @staticmethod
    def build_body(payload: NotificationPayload) -> dict[str, object]:
        """Gateway request body for one device token."""
        return {
            "to": payload.to,
            "title": payload.subject,
            "body": payload.message,
            "data": payload.data,
            "priority": "high" if payload.priority in {"urgent", "high"} else "normal",
        }

    @override
    async def send(self, payload: NotificationPayload) -> None:
        if not payload.to:
            raise ChannelDeliveryError(self.type, "device token is empty")

        try:
            self._breaker.before_call()
        except CircuitBreakerError as exc:
            raise ChannelDeliveryError(self.type, str(exc)) from exc

        try:
            async with httpx.AsyncClient(timeout=self._config.timeout, transport=self._transport) as client:
                response = await client.post(
                    self._gateway_url,
                    json=self.build_body(payload),
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            self._breaker.record_failure()
            logger.error("Push gateway unreachable: %s", exc)
            raise ChannelDeliveryError(self.type, f"gateway unreachable: {exc}") from exc

        if response.is_error:
            self._breaker.record_failure()
            logger.error("Push gateway returned %d for token %s", response.status_code, payload.to)
            raise ChannelDeliveryError(self.type, f"gateway returned status {response.status_code}")

        self._breaker.record_success()
        logger.info("Push notification accepted for token %s", payload.to)
