"""Broker provider contract."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from qa_notify.broker.message import QueueMessage

type MessageHandler = Callable[[QueueMessage], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class QueueInfo:
    """Depth and consumer count of one queue."""

    message_count: int
    consumer_count: int


@runtime_checkable
class QueueProvider(Protocol):
    """Connection lifecycle, topology, publish and consume over a message broker.

    Reconnecting after connection loss is the provider's job; callers only
    see errors for operations attempted while the broker is unreachable.
    """

    async def connect(self) -> None:
        """Open the connection and channel.

        Raises:
            BrokerConnectionError: If the broker stays unreachable after retries
        """
        ...

    async def disconnect(self) -> None:
        """Close the channel and connection."""
        ...

    def is_connected(self) -> bool:
        """Whether a usable channel is open."""
        ...

    async def create_queue(
        self,
        name: str,
        *,
        durable: bool = True,
        auto_delete: bool = False,
        arguments: dict[str, object] | None = None,
    ) -> None:
        ...

    async def delete_queue(self, name: str) -> None:
        ...

    async def purge_queue(self, name: str) -> int:
        """Drop all ready messages, returning how many were removed."""
        ...

    async def create_exchange(self, name: str, exchange_type: str, *, durable: bool = True) -> None:
        ...

    async def delete_exchange(self, name: str) -> None:
        ...

    async def bind_queue(self, queue: str, exchange: str, routing_key: str) -> None:
        ...

    async def publish(self, exchange: str, routing_key: str, message: QueueMessage) -> bool:
        """Publish through an exchange.

        Raises:
            QueuePublishError: If the broker rejects the message
        """
        ...

    async def publish_to_queue(self, name: str, message: QueueMessage) -> bool:
        """Publish straight to a queue via the default exchange.

        Raises:
            QueuePublishError: If the broker rejects the message
        """
        ...

    async def consume(self, name: str, handler: MessageHandler) -> str:
        """Subscribe ``handler`` to a queue and return the consumer tag.

        Messages are acked when the handler returns and nacked with requeue
        when decoding or the handler fails.
        """
        ...

    async def cancel(self, consumer_tag: str) -> None:
        ...

    async def get_queue_info(self, name: str) -> QueueInfo:
        ...

    async def health_check(self) -> bool:
        ...
