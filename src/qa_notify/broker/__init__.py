"""Message broker integration."""

from __future__ import annotations

from .message import MESSAGE_TYPE, QueueMessage, new_message_id, queue_priority
from .protocols import MessageHandler, QueueInfo, QueueProvider
from .rabbitmq import RabbitMQProvider

__all__ = [
    # Envelope
    "MESSAGE_TYPE",
    "QueueMessage",
    "new_message_id",
    "queue_priority",
    # Provider contract
    "MessageHandler",
    "QueueInfo",
    "QueueProvider",
    # Implementations
    "RabbitMQProvider",
]
