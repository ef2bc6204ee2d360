# notifier/notification_consumer.py
import asyncio
import inspect
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from aio_pika.abc import AbstractChannel, AbstractIncomingMessage, AbstractQueue, AbstractRobustConnection

from notifier.config import QueueTopology
from notifier.errors import ShutdownError, TopologyError
from shared.mq.amqp_helpers import BROKER_ERRORS, create_amqp_connection, declare_topology

logger = logging.getLogger(__name__)

# Called once per message with (routing key, raw body); may be sync or async
MessageHandler = Callable[[str, bytes], Union[None, Awaitable[None]]]


class ConsumerState(Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"
    CONSUMING = "consuming"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


class NotificationConsumer:
    """
    Consumes notification events from a RabbitMQ queue bound to the `events`
    topic exchange and feeds them, one at a time and in receipt order, to a
    message handler.

    Messages are auto-acknowledged on delivery (at-most-once). A handler that
    raises never stops the consumer; the fault is logged and the next message
    is processed.
    """

    def __init__(self, connection: AbstractRobustConnection, channel: AbstractChannel,
                 queue: AbstractQueue, handler: MessageHandler):
        """
        Wrap an already connected channel and declared queue.

        Use `NotificationConsumer.connect` to dial the broker and set up the
        topology.
        """
        self.connection = connection
        self.channel = channel
        self.queue = queue
        self.handler = handler
        self.state = ConsumerState.CONNECTED
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._consumer_tag: Optional[str] = None

        self.stats = {
            'messages_received': 0,
            'messages_handled': 0,
            'handler_faults': 0,
            'started_at': None
        }

    @classmethod
    async def connect(cls, amqp_url: str, topology: QueueTopology, handler: MessageHandler,
                      connect_attempts: int = 3, retry_delay: float = 1.0) -> "NotificationConsumer":
        """
        Dial the broker, declare the exchange and queue, and bind routing keys.

        Args:
            amqp_url: Broker URL
            topology: Exchange, queue and binding keys to declare
            handler: Callable invoked for every received message
            connect_attempts: Connection attempts before giving up
            retry_delay: Base delay between connection attempts in seconds

        Returns:
            A consumer in the CONNECTED state

        Raises:
            TopologyError: If any setup step fails; nothing is left open
        """
        connection = None
        try:
            connection = await create_amqp_connection(
                amqp_url,
                max_attempts=connect_attempts,
                base_delay=retry_delay
            )
            channel = await connection.channel()
            _, queue = await declare_topology(
                channel,
                topology.exchange_name,
                topology.queue_name,
                topology.effective_binding_keys()
            )
        except BROKER_ERRORS as e:
            logger.error(f"Failed to set up queue '{topology.queue_name}' on exchange '{topology.exchange_name}': {e}")
            if connection is not None:
                try:
                    await connection.close()
                except BROKER_ERRORS as close_error:
                    logger.warning(f"Error closing RabbitMQ connection after setup failure: {close_error}")
            raise TopologyError(f"Could not set up notification queue '{topology.queue_name}': {e}") from e

        return cls(connection, channel, queue, handler)

    async def _on_message(self, message: AbstractIncomingMessage):
        """Broker delivery callback; buffers the message for the consume loop."""
        self.stats['messages_received'] += 1
        await self._inbox.put(message)

    async def _dispatch(self, message: AbstractIncomingMessage):
        """Run the handler for one message inside a fault boundary."""
        event_name = message.routing_key or ""
        logger.debug(f"Received message - event={event_name} size={len(message.body)} bytes")

        try:
            result = self.handler(event_name, message.body)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.stats['handler_faults'] += 1
            logger.exception(f"Notification handler failed for event={event_name}: {e}")
        finally:
            self.stats['messages_handled'] += 1

    async def start(self, shutdown_event: asyncio.Event):
        """
        Consume messages until `shutdown_event` is set, then close everything.

        Args:
            shutdown_event: Set externally (e.g. from a signal handler) to stop

        Raises:
            RuntimeError: If the consumer is not in the CONNECTED state
            TopologyError: If the broker refuses to start the consumer
            ShutdownError: If closing the channel or connection failed
        """
        if self.state is not ConsumerState.CONNECTED:
            raise RuntimeError(f"Cannot start consumer in state {self.state.name}")

        try:
            self._consumer_tag = await self.queue.consume(self._on_message, no_ack=True)
        except BROKER_ERRORS as e:
            logger.error(f"Failed to start consuming messages: {e}")
            try:
                await self.shutdown()
            except ShutdownError as close_error:
                logger.warning(f"Error closing consumer after failed start: {close_error}")
            raise TopologyError(f"Could not consume from queue '{self.queue.name}': {e}") from e

        self.state = ConsumerState.CONSUMING
        self.stats['started_at'] = time.time()
        logger.info(f"Notification consumer listening on queue: {self.queue.name}")

        shutdown_wait = asyncio.ensure_future(shutdown_event.wait())
        next_message = None
        try:
            while not shutdown_event.is_set():
                next_message = asyncio.ensure_future(self._inbox.get())
                done, _ = await asyncio.wait(
                    {next_message, shutdown_wait},
                    return_when=asyncio.FIRST_COMPLETED
                )
                if next_message in done:
                    await self._dispatch(next_message.result())
        finally:
            if next_message is not None and not next_message.done():
                next_message.cancel()
            shutdown_wait.cancel()

        logger.info("Stopping notification consumer...")
        await self.shutdown()

    async def shutdown(self):
        """
        Stop accepting messages, finish buffered ones, close channel and connection.

        Every step runs even if an earlier one fails.

        Raises:
            ShutdownError: Wrapping the first error met during teardown
        """
        self.state = ConsumerState.SHUTTING_DOWN
        errors: List[BaseException] = []

        if self._consumer_tag is not None:
            try:
                await self.queue.cancel(self._consumer_tag)
            except BROKER_ERRORS as e:
                logger.error(f"Error cancelling consumer on queue '{self.queue.name}': {e}")
                errors.append(e)
            self._consumer_tag = None

        # Already delivered and acknowledged, so they get their processing attempt now
        drained = 0
        while not self._inbox.empty():
            await self._dispatch(self._inbox.get_nowait())
            drained += 1
        if drained:
            logger.info(f"Handled {drained} buffered message(s) during shutdown")

        for name, resource in (("channel", self.channel), ("connection", self.connection)):
            try:
                await resource.close()
                logger.info(f"RabbitMQ {name} closed")
            except BROKER_ERRORS as e:
                logger.error(f"Error closing RabbitMQ {name}: {e}")
                errors.append(e)

        self.state = ConsumerState.CLOSED
        logger.info(f"Notification consumer stopped: {self.get_statistics()}")

        if errors:
            raise ShutdownError(f"Error during consumer shutdown: {errors[0]}") from errors[0]

    def get_statistics(self) -> Dict[str, Any]:
        """Get consumer statistics."""
        stats = self.stats.copy()
        if stats['started_at']:
            stats['uptime_seconds'] = time.time() - stats['started_at']
        return stats
