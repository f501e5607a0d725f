"""RabbitMQ queue provider built on aio-pika."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aio_pika
from aio_pika.abc import (
    AbstractExchange,
    AbstractIncomingMessage,
    AbstractQueue,
    AbstractRobustChannel,
    AbstractRobustConnection,
)
from aio_pika.exceptions import AMQPConnectionError, AMQPException
from pydantic import ValidationError

from qa_notify.broker.message import QueueMessage
from qa_notify.broker.protocols import MessageHandler, QueueInfo
from qa_notify.notifications.base.retry import with_backoff
from qa_notify.notifications.exceptions import (
    BrokerConnectionError,
    BrokerError,
    QueuePublishError,
)
from qa_notify.utils.logging import correlation_scope
from qa_notify.utils.sanitization import sanitize_exception, sanitize_url

if TYPE_CHECKING:
    from qa_notify.config.models import BrokerConfig

logger = logging.getLogger(__name__)


class RabbitMQProvider:
    """QueueProvider over a robust aio-pika connection.

    The robust connection re-establishes itself and its channel after a
    network failure, so a lost broker never crashes the consumer.
    """

    def __init__(self, config: BrokerConfig) -> None:
        self._config: BrokerConfig = config
        self._connection: AbstractRobustConnection | None = None
        self._channel: AbstractRobustChannel | None = None
        self._consumers: dict[str, AbstractQueue] = {}

    @property
    def config(self) -> BrokerConfig:
        return self._config

    async def connect(self) -> None:
        """Connect with exponential backoff and open a channel with QoS set.

        Raises:
            BrokerConnectionError: If every attempt fails
        """
        if self.is_connected():
            return

        opener = with_backoff(
            max_attempts=self._config.connect_attempts,
            backoff_factor=self._config.connect_backoff,
            retry_on=(AMQPConnectionError, OSError),
        )(self._open)

        try:
            await opener()
        except (AMQPConnectionError, OSError) as exc:
            raise BrokerConnectionError(
                f"Could not connect to RabbitMQ at {self._config.host}:{self._config.port}",
                context={
                    "url": sanitize_url(self._config.url),
                    "attempts": self._config.connect_attempts,
                    "error": sanitize_exception(exc),
                },
            ) from exc

        logger.info(
            "Connected to RabbitMQ at %s:%d (prefetch=%d)",
            self._config.host,
            self._config.port,
            self._config.prefetch_count,
        )

    async def _open(self) -> None:
        connection = await aio_pika.connect_robust(self._config.url)
        channel = await connection.channel()
        await channel.set_qos(prefetch_count=self._config.prefetch_count)
        self._connection = connection
        self._channel = channel  # pyright: ignore[reportAttributeAccessIssue] # robust connection yields robust channels

    async def disconnect(self) -> None:
        """Cancel consumers and close the connection."""
        for consumer_tag in list(self._consumers):
            await self.cancel(consumer_tag)
        if self._channel is not None and not self._channel.is_closed:
            await self._channel.close()
        if self._connection is not None and not self._connection.is_closed:
            await self._connection.close()
        self._channel = None
        self._connection = None
        logger.info("Disconnected from RabbitMQ")

    def is_connected(self) -> bool:
        return (
            self._connection is not None
            and not self._connection.is_closed
            and self._channel is not None
            and not self._channel.is_closed
        )

    def _require_channel(self) -> AbstractRobustChannel:
        if self._channel is None or self._channel.is_closed:
            raise BrokerError("RabbitMQ channel is not open; call connect() first")
        return self._channel

    async def create_queue(
        self,
        name: str,
        *,
        durable: bool = True,
        auto_delete: bool = False,
        arguments: dict[str, object] | None = None,
    ) -> None:
        channel = self._require_channel()
        _ = await channel.declare_queue(
            name,
            durable=durable,
            auto_delete=auto_delete,
            arguments=arguments,  # pyright: ignore[reportArgumentType] # AMQP table values
        )
        logger.debug("Declared queue %s (arguments=%s)", name, arguments)

    async def delete_queue(self, name: str) -> None:
        channel = self._require_channel()
        _ = await channel.queue_delete(name)
        logger.info("Deleted queue %s", name)

    async def purge_queue(self, name: str) -> int:
        channel = self._require_channel()
        queue = await channel.get_queue(name, ensure=True)
        result = await queue.purge()
        purged = int(getattr(result, "message_count", 0) or 0)
        logger.info("Purged %d message(s) from queue %s", purged, name)
        return purged

    async def create_exchange(self, name: str, exchange_type: str, *, durable: bool = True) -> None:
        channel = self._require_channel()
        _ = await channel.declare_exchange(
            name,
            type=aio_pika.ExchangeType(exchange_type),
            durable=durable,
        )
        logger.debug("Declared %s exchange %s", exchange_type, name)

    async def delete_exchange(self, name: str) -> None:
        channel = self._require_channel()
        _ = await channel.exchange_delete(name)
        logger.info("Deleted exchange %s", name)

    async def bind_queue(self, queue: str, exchange: str, routing_key: str) -> None:
        channel = self._require_channel()
        declared_queue = await channel.get_queue(queue, ensure=True)
        declared_exchange = await channel.get_exchange(exchange, ensure=True)
        _ = await declared_queue.bind(declared_exchange, routing_key=routing_key)
        logger.debug("Bound queue %s to %s with key %s", queue, exchange, routing_key)

    @staticmethod
    def _build_message(message: QueueMessage) -> aio_pika.Message:
        return aio_pika.Message(
            body=message.to_bytes(),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            priority=message.priority,
            message_id=message.id,
            type=message.type,
        )

    async def _publish_via(
        self,
        exchange: AbstractExchange,
        routing_key: str,
        message: QueueMessage,
    ) -> bool:
        try:
            _ = await exchange.publish(self._build_message(message), routing_key=routing_key)
        except (AMQPException, OSError) as exc:
            raise QueuePublishError(
                f"Failed to publish message {message.id}",
                context={
                    "message_id": message.id,
                    "routing_key": routing_key,
                    "error": sanitize_exception(exc),
                },
            ) from exc
        logger.debug("Published message %s (routing_key=%s, priority=%d)", message.id, routing_key, message.priority)
        return True

    async def publish(self, exchange: str, routing_key: str, message: QueueMessage) -> bool:
        channel = self._require_channel()
        target = await channel.get_exchange(exchange, ensure=False)
        return await self._publish_via(target, routing_key, message)

    async def publish_to_queue(self, name: str, message: QueueMessage) -> bool:
        channel = self._require_channel()
        return await self._publish_via(channel.default_exchange, name, message)

    async def consume(self, name: str, handler: MessageHandler) -> str:
        channel = self._require_channel()
        queue = await channel.get_queue(name, ensure=True)

        async def callback(message: AbstractIncomingMessage) -> None:
            await self._on_message(handler, message)

        consumer_tag = await queue.consume(callback, no_ack=False)
        self._consumers[consumer_tag] = queue
        logger.info("Started consumer %s on queue %s", consumer_tag, name)
        return consumer_tag

    async def _on_message(self, handler: MessageHandler, message: AbstractIncomingMessage) -> None:
        """Decode, hand off, then ack, or nack with requeue on any failure."""
        with correlation_scope(message.message_id or "N/A"):
            try:
                envelope = QueueMessage.from_bytes(message.body)
            except ValidationError as exc:
                logger.error(
                    "Undecodable message %s, requeueing: %s",
                    message.message_id,
                    exc.errors(include_url=False),
                )
                await message.nack(requeue=True)
                return

            try:
                await handler(envelope)
            except Exception as exc:
                logger.error(
                    "Handler failed for message %s, requeueing: %s",
                    envelope.id,
                    sanitize_exception(exc),
                )
                await message.nack(requeue=True)
                return

            await message.ack()
            logger.debug("Acknowledged message %s", envelope.id)

    async def cancel(self, consumer_tag: str) -> None:
        queue = self._consumers.pop(consumer_tag, None)
        if queue is None:
            logger.warning("Unknown consumer tag %s", consumer_tag)
            return
        _ = await queue.cancel(consumer_tag)
        logger.info("Cancelled consumer %s", consumer_tag)

    async def get_queue_info(self, name: str) -> QueueInfo:
        """Read queue counters through a passive declare.

        Raises:
            BrokerError: If the queue does not exist or the channel is closed
        """
        channel = self._require_channel()
        try:
            queue = await channel.declare_queue(name, passive=True)
        except AMQPException as exc:
            raise BrokerError(
                f"Could not inspect queue {name}",
                context={"queue": name, "error": sanitize_exception(exc)},
            ) from exc
        result = queue.declaration_result
        return QueueInfo(
            message_count=int(result.message_count or 0),
            consumer_count=int(result.consumer_count or 0),
        )

    async def health_check(self) -> bool:
        if not self.is_connected():
            return False
        try:
            _ = await self.get_queue_info(self._config.queue)
        except BrokerError:
            return False
        return True
