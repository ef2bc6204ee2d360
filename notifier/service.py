# notifier/service.py
import asyncio
import logging
import signal
import sys
from typing import Optional

from notifier import config
from notifier.config import NotifierConfig
from notifier.email_service import EmailService
from notifier.errors import NotifierError
from notifier.notification_consumer import NotificationConsumer
from notifier.notification_handler import NotificationHandler

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO):
    """Configure root logging for the service process."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


class NotifierService:
    """
    Main notifier service that wires the email service, handler and consumer
    together and handles graceful shutdown.
    """

    def __init__(self, notifier_config: NotifierConfig):
        """Initialize the notifier service."""
        self.config = notifier_config
        self.consumer: Optional[NotificationConsumer] = None
        self.handler: Optional[NotificationHandler] = None
        self._shutdown_event = asyncio.Event()

    async def start(self):
        """
        Build the components and consume until shutdown is requested.

        Raises:
            ConfigurationError: If the SMTP credentials are missing
            TopologyError: If the broker or queue cannot be set up
            ShutdownError: If closing broker resources failed
        """
        logger.info(f"Starting {config.SERVICE_NAME}")

        email_service = EmailService(self.config.mail)
        logger.info(f"Notifier sender={self.config.mail.sender_address}")

        self.handler = NotificationHandler(email_service)
        self.consumer = await NotificationConsumer.connect(
            self.config.amqp_url,
            self.config.topology,
            self.handler.handle,
            connect_attempts=self.config.connect_attempts,
            retry_delay=self.config.connect_retry_delay
        )

        logger.info(f"{config.SERVICE_NAME} started successfully")
        await self.consumer.start(self._shutdown_event)
        logger.info(f"{config.SERVICE_NAME} stopped, handler statistics: {self.handler.get_statistics()}")

    def shutdown(self):
        """Signal the service to shut down."""
        logger.info("Shutdown signal received")
        self._shutdown_event.set()


async def main() -> int:
    """
    Main entry point.

    Returns:
        Process exit code
    """
    configure_logging(config.LOG_LEVEL)
    notifier_config = config.load_config()

    service = NotifierService(notifier_config)

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, service.shutdown)

    try:
        await service.start()
    except NotifierError as e:
        logger.error(f"{config.SERVICE_NAME} failed: {e}")
        return 1
    finally:
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)

    logger.info("Service completed successfully")
    return 0


def run():
    """Console-script entry point."""
    sys.exit(asyncio.run(main()))
