"""Message broker configuration."""

from __future__ import annotations

from typing import Literal
from urllib.parse import quote

from pydantic import Field, model_validator

from .base import BaseConfig


class BrokerConfig(BaseConfig):
    """RabbitMQ connection and queue topology settings."""

    host: str = Field(default="localhost", description="Broker host")
    port: int = Field(default=5672, ge=1, le=65535, description="Broker AMQP port")
    username: str = Field(default="admin", description="Broker user")
    password: str = Field(default="admin123", description="Broker password")
    vhost: str = Field(default="/", description="Broker virtual host")

    prefetch_count: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum unacknowledged messages per consumer",
    )
    connect_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Attempts for the initial connection",
    )
    connect_backoff: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Exponential backoff base between connection attempts",
    )
    eager_connect: bool = Field(
        default=False,
        description="Connect and declare topology at startup instead of first use",
    )

    exchange: str = Field(default="notification.exchange", description="Primary topic exchange")
    queue: str = Field(default="notifications", description="Primary notification queue")
    routing_key: str = Field(default="notification", description="Routing key prefix on the primary exchange")
    dead_letter_exchange: str = Field(default="notification.dlx", description="Dead-letter exchange")
    dead_letter_queue: str = Field(default="notifications.dlq", description="Dead-letter queue")
    dead_letter_routing_key: str = Field(default="failed", description="Routing key used when dead-lettering")

    queue_type: Literal["classic", "quorum"] = Field(
        default="quorum",
        description="Primary queue type; quorum enables the delivery limit, classic enables priorities",
    )
    delivery_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Redeliveries before a quorum queue dead-letters a message",
    )
    max_priority: int = Field(
        default=10,
        ge=1,
        le=255,
        description="x-max-priority for classic queues",
    )

    @model_validator(mode="after")
    def validate_credentials(self) -> BrokerConfig:
        """Require credentials when connecting to a non-local broker."""
        if self.host not in {"localhost", "127.0.0.1"} and not (self.username and self.password):
            raise ValueError("Broker username and password are required for remote hosts")
        return self

    @property
    def url(self) -> str:
        """AMQP connection URL assembled from the individual settings."""
        user = quote(self.username, safe="")
        password = quote(self.password, safe="")
        vhost = quote(self.vhost, safe="")
        return f"amqp://{user}:{password}@{self.host}:{self.port}/{vhost}"

    def queue_arguments(self) -> dict[str, object]:
        """Arguments for declaring the primary queue."""
        arguments: dict[str, object] = {
            "x-dead-letter-exchange": self.dead_letter_exchange,
            "x-dead-letter-routing-key": self.dead_letter_routing_key,
        }
        if self.queue_type == "quorum":
            arguments["x-queue-type"] = "quorum"
            arguments["x-delivery-limit"] = self.delivery_limit
        else:
            arguments["x-max-priority"] = self.max_priority
        return arguments
