"""Email channel over SMTP."""

from __future__ import annotations

import logging
from email.message import EmailMessage
from email.utils import formataddr
from typing import ClassVar, override

import aiosmtplib

from qa_notify.config.models import SmtpConfig
from qa_notify.notifications.base.channel import Channel
from qa_notify.notifications.exceptions import ChannelDeliveryError, ConfigurationError
from qa_notify.notifications.models import ChannelType, NotificationPayload
from qa_notify.utils.sanitization import sanitize_exception

logger = logging.getLogger(__name__)


class EmailChannel(Channel):
    """Sends multipart text/HTML mail through an authenticated SMTP server."""

    type: ClassVar[str] = ChannelType.EMAIL.value
    display_name: ClassVar[str] = "Email"

    def __init__(self, config: SmtpConfig) -> None:
        """Initialize the channel.

        Raises:
            ConfigurationError: If the SMTP login or password is missing
        """
        super().__init__(enabled=config.enabled)
        self._config: SmtpConfig = config
        self.validate_config()

    @override
    def validate_config(self) -> None:
        if not self._config.is_complete:
            raise ConfigurationError(
                "SMTP user and password are required for the email channel",
                context={"channel": self.type, "host": self._config.host},
            )

    def build_message(self, payload: NotificationPayload) -> EmailMessage:
        """Assemble the MIME message for a payload."""
        sender = self._config.user or ""
        message = EmailMessage()
        message["From"] = formataddr((self._config.sender_name, sender)) if self._config.sender_name else sender
        message["To"] = payload.to
        message["Subject"] = payload.subject
        message.set_content(payload.message)
        if payload.html:
            message.add_alternative(payload.html, subtype="html")
        return message

    @override
    async def send(self, payload: NotificationPayload) -> None:
        if not payload.to:
            raise ChannelDeliveryError(self.type, "recipient email address is empty")

        message = self.build_message(payload)
        try:
            _ = await aiosmtplib.send(
                message,
                hostname=self._config.host,
                port=self._config.port,
                username=self._config.user,
                password=self._config.password,
                use_tls=self._config.use_tls,
                timeout=self._config.timeout,
            )
        except (aiosmtplib.SMTPException, OSError, TimeoutError) as exc:
            logger.error("Email to %s failed: %s", payload.to, sanitize_exception(exc))
            raise ChannelDeliveryError(self.type, sanitize_exception(exc)) from exc

        logger.info("Email sent to %s", payload.to)
