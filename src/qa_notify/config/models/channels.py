"""Per-channel transport configuration."""

from __future__ import annotations

from pydantic import Field, field_validator

from .base import BaseConfig


class SmtpConfig(BaseConfig):
    """SMTP settings for the email channel."""

    enabled: bool = Field(default=True, description="Whether to register the email channel")
    host: str = Field(default="smtp.gmail.com", description="SMTP server host")
    port: int = Field(default=465, ge=1, le=65535, description="SMTP server port")
    secure: bool | None = Field(
        default=None,
        description="Use implicit TLS; derived from the port when unset",
    )
    user: str | None = Field(default=None, description="SMTP login, also the default sender")
    password: str | None = Field(default=None, description="SMTP application password")
    sender_name: str | None = Field(default=None, description="Display name for the From header")
    timeout: float = Field(default=30.0, gt=0, le=300, description="SMTP command timeout in seconds")

    @property
    def use_tls(self) -> bool:
        """Whether to open the connection with implicit TLS."""
        return self.secure if self.secure is not None else self.port == 465

    @property
    def is_complete(self) -> bool:
        """Whether credentials are present."""
        return bool(self.user and self.password)


class SmsConfig(BaseConfig):
    """Twilio settings for the SMS channel."""

    enabled: bool = Field(default=False, description="Whether to register the SMS channel")
    account_sid: str | None = Field(default=None, description="Twilio account SID")
    auth_token: str | None = Field(default=None, description="Twilio auth token")
    from_number: str | None = Field(default=None, description="Sender phone number in E.164 format")

    @field_validator("from_number")
    @classmethod
    def validate_from_number(cls, v: str | None) -> str | None:
        """Require E.164 formatting for the sender number."""
        if v is not None and not v.startswith("+"):
            raise ValueError("from_number must be in E.164 format, e.g. +15551234567")
        return v

    @property
    def is_complete(self) -> bool:
        """Whether all Twilio settings are present."""
        return bool(self.account_sid and self.auth_token and self.from_number)


class PushConfig(BaseConfig):
    """HTTP push gateway settings for the push channel."""

    enabled: bool = Field(default=False, description="Whether to register the push channel")
    gateway_url: str | None = Field(default=None, description="Push gateway endpoint")
    api_key: str | None = Field(default=None, description="Bearer token for the gateway")
    timeout: float = Field(default=10.0, gt=0, le=120, description="Request timeout in seconds")
    circuit_breaker_threshold: int = Field(default=5, ge=1, le=100, description="Failures before the circuit opens")
    circuit_breaker_cooldown: float = Field(default=60.0, gt=0, le=3600, description="Seconds before a trial call")

    @field_validator("gateway_url")
    @classmethod
    def validate_gateway_url(cls, v: str | None) -> str | None:
        """Require an http(s) URL."""
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("gateway_url must start with http:// or https://")
        return v

    @property
    def is_complete(self) -> bool:
        """Whether the gateway endpoint and key are present."""
        return bool(self.gateway_url and self.api_key)


class WebhookConfig(BaseConfig):
    """Settings for the webhook channel's HTTP client."""

    enabled: bool = Field(default=True, description="Whether to register the webhook channel")
    timeout: float = Field(default=10.0, gt=0, le=120, description="Request timeout in seconds")
    max_retries: int = Field(default=3, ge=0, le=10, description="Retries for 5xx, 429 and network errors")
    max_backoff: float = Field(default=30.0, gt=0, le=600, description="Maximum delay between retries")
    circuit_breaker_threshold: int = Field(default=10, ge=1, le=100, description="Failures before the circuit opens")
    circuit_breaker_cooldown: float = Field(default=60.0, gt=0, le=3600, description="Seconds before a trial call")
