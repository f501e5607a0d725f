"""Pydantic models for configuration validation."""

from __future__ import annotations

from .base import BaseConfig
from .broker import BrokerConfig
from .channels import PushConfig, SmsConfig, SmtpConfig, WebhookConfig
from .main import (
    AppConfig,
    DispatchConfig,
    LanguageConfig,
    LoggingConfig,
    MetricsConfig,
    StrategyConfig,
)

__all__ = [
    # Base model
    "BaseConfig",
    # Main configuration
    "AppConfig",
    "DispatchConfig",
    "LanguageConfig",
    "LoggingConfig",
    "MetricsConfig",
    "StrategyConfig",
    # Transports
    "BrokerConfig",
    "PushConfig",
    "SmsConfig",
    "SmtpConfig",
    "WebhookConfig",
]
