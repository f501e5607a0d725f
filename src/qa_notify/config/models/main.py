"""Main configuration model."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator, model_validator

from .base import BaseConfig
from .broker import BrokerConfig
from .channels import PushConfig, SmsConfig, SmtpConfig, WebhookConfig


class StrategyConfig(BaseConfig):
    """Thresholds of the direct/queue rule chain."""

    max_queue_size: int = Field(default=1000, ge=0, description="Queue depth above which the queue is used")
    max_response_time_ms: float = Field(default=5000.0, ge=0, description="Latency above which the queue is used")
    max_error_rate: float = Field(default=5.0, ge=0, le=100, description="Error percentage above which the queue is used")
    max_peak_connections: int = Field(default=100, ge=0, description="Connections during peak hours above which the queue is used")


class MetricsConfig(BaseConfig):
    """System metrics sampling."""

    cache_ttl: float = Field(default=5.0, ge=0, le=300, description="Seconds a snapshot stays valid")
    window_size: int = Field(default=200, ge=1, le=100_000, description="Dispatch outcomes kept for latency and error rate")


class DispatchConfig(BaseConfig):
    """Dispatcher settings."""

    sender: str | None = Field(default=None, description="From address recorded on notifications")


class LoggingConfig(BaseConfig):
    """Configuration for logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    format: Literal["text", "json"] = Field(default="text", description="Console output format")
    console: bool = Field(default=True, description="Log to stdout")


class LanguageConfig(BaseConfig):
    """Supported locales."""

    supported: list[str] = Field(default_factory=lambda: ["tr", "en", "de"], min_length=1)
    default: str = Field(default="tr")

    @field_validator("supported")
    @classmethod
    def validate_supported(cls, v: list[str]) -> list[str]:
        """Lowercase locale codes."""
        return [code.lower() for code in v]

    @model_validator(mode="after")
    def validate_default(self) -> LanguageConfig:
        """Require the default locale to be supported."""
        if self.default not in self.supported:
            raise ValueError(f"Default language '{self.default}' is not in {self.supported}")
        return self


class AppConfig(BaseConfig):
    """Complete application configuration."""

    broker: BrokerConfig = Field(default_factory=BrokerConfig, description="Message broker")
    smtp: SmtpConfig = Field(default_factory=SmtpConfig, description="Email channel")
    sms: SmsConfig = Field(default_factory=SmsConfig, description="SMS channel")
    push: PushConfig = Field(default_factory=PushConfig, description="Push channel")
    webhook: WebhookConfig = Field(default_factory=WebhookConfig, description="Webhook channel")
    strategy: StrategyConfig = Field(default_factory=StrategyConfig, description="Strategy thresholds")
    metrics: MetricsConfig = Field(default_factory=MetricsConfig, description="Metrics sampling")
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig, description="Dispatcher")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging")
    languages: LanguageConfig = Field(default_factory=LanguageConfig, description="Locales")

    @property
    def sender_address(self) -> str | None:
        """From address for records, falling back to the SMTP login."""
        return self.dispatch.sender or self.smtp.user
