"""SMS channel through the Twilio REST API."""

from __future__ import annotations

import asyncio
import logging
from typing import ClassVar, override

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client

from qa_notify.config.models import SmsConfig
from qa_notify.notifications.base.channel import Channel
from qa_notify.notifications.exceptions import ChannelDeliveryError, ConfigurationError
from qa_notify.notifications.models import ChannelType, NotificationPayload
from qa_notify.utils.sanitization import sanitize_url

logger = logging.getLogger(__name__)


class SmsChannel(Channel):
    """Sends text messages with the blocking Twilio client in a worker thread."""

    type: ClassVar[str] = ChannelType.SMS.value
    display_name: ClassVar[str] = "SMS"

    def __init__(self, config: SmsConfig, client: Client | None = None) -> None:
        """Initialize the channel.

        Args:
            config: Twilio credentials and sender number
            client: Preconfigured Twilio client; built from ``config`` when omitted

        Raises:
            ConfigurationError: If any Twilio setting is missing
        """
        super().__init__(enabled=config.enabled)
        self._config: SmsConfig = config
        self.validate_config()
        self._client: Client = client or Client(config.account_sid, config.auth_token)

    @override
    def validate_config(self) -> None:
        if not self._config.is_complete:
            raise ConfigurationError(
                "Twilio account SID, auth token and sender number are required for the SMS channel",
                context={"channel": self.type},
            )

    @staticmethod
    def format_body(payload: NotificationPayload) -> str:
        """Subject and message on separate lines, or just the message."""
        if payload.subject:
            return f"{payload.subject}\n{payload.message}"
        return payload.message

    @override
    async def send(self, payload: NotificationPayload) -> None:
        if not payload.to:
            raise ChannelDeliveryError(self.type, "recipient phone number is empty")

        try:
            message = await asyncio.to_thread(
                self._client.messages.create,
                body=self.format_body(payload),
                from_=self._config.from_number,
                to=payload.to,
            )
        except TwilioRestException as exc:
            reason = f"Twilio error {exc.code}: {sanitize_url(str(exc.msg))}"
            logger.error("SMS to %s failed: %s", payload.to, reason)
            raise ChannelDeliveryError(self.type, reason) from exc
        except TwilioException as exc:
            logger.error("SMS to %s failed: %s", payload.to, sanitize_url(str(exc)))
            raise ChannelDeliveryError(self.type, sanitize_url(str(exc))) from exc

        logger.info("SMS sent to %s (sid=%s)", payload.to, message.sid)
