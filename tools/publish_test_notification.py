#!/usr/bin/env python3
"""
Test Notification Publisher
Publishes a single notification event to the `events` exchange so the
notifier service can be exercised end to end.

Reads RABBITMQ_URL, QUEUE_NAME, QUEUE_BINDINGS and RECIPIENT_EMAIL from the
environment (or a .env file).
"""

import sys
import os
import asyncio
import logging
import argparse

# Add the parent directory to the path to import shared modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from notifier.config import DEFAULT_AMQP_URL, QueueTopology, load_queue_topology
from notifier.models import NotificationEvent
from shared.mq.amqp_helpers import BROKER_ERRORS, create_amqp_connection, declare_topology, publish_message

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "This is a test notification from the service."


async def publish_test_notification(amqp_url: str, topology: QueueTopology, routing_key: str,
                                    recipient: str, message: str):
    """Declare the notifier topology and publish one notification event."""
    connection = await create_amqp_connection(amqp_url, max_attempts=1)
    try:
        channel = await connection.channel()
        exchange, _ = await declare_topology(
            channel,
            topology.exchange_name,
            topology.queue_name,
            topology.effective_binding_keys()
        )
        event = NotificationEvent(recipient=recipient, body=message)
        await publish_message(exchange, routing_key, event)
        logger.info(f"Test notification published to {topology.exchange_name}/{routing_key}")
    finally:
        await connection.close()


def main(argv=None) -> int:
    topology = load_queue_topology()

    parser = argparse.ArgumentParser(description="Publish a test notification event")
    parser.add_argument("--routing-key", default=topology.queue_name,
                        help="routing key to publish with (default: the queue name)")
    parser.add_argument("--recipient", default=os.getenv("RECIPIENT_EMAIL", ""),
                        help="recipient address (default: $RECIPIENT_EMAIL)")
    parser.add_argument("--message", default=DEFAULT_MESSAGE, help="message body")
    args = parser.parse_args(argv)

    if not args.recipient:
        logger.error("RECIPIENT_EMAIL not set in .env and --recipient not given")
        return 1

    amqp_url = os.getenv("RABBITMQ_URL") or DEFAULT_AMQP_URL
    try:
        asyncio.run(publish_test_notification(amqp_url, topology, args.routing_key, args.recipient, args.message))
    except BROKER_ERRORS as e:
        logger.error(f"Failed to publish test notification: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
