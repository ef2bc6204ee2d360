# notifier/notification_handler.py
import asyncio
import logging
from typing import Any, Dict

from notifier.config import NOTIFICATION_SUBJECT
from notifier.email_service import EmailService
from notifier.errors import DecodeError, SendError
from notifier.models import decode_notification

logger = logging.getLogger(__name__)


class NotificationHandler:
    """
    Turns one bus message into one email.

    Every failure is terminal for that message only: it is logged and the
    message is dropped. Nothing is raised back to the consumer for decode or
    send errors.
    """

    def __init__(self, email_service: EmailService, subject: str = NOTIFICATION_SUBJECT):
        self.email_service = email_service
        self.subject = subject
        self.stats = {
            'messages_processed': 0,
            'emails_sent': 0,
            'emails_failed': 0,
            'decode_errors': 0,
        }

    async def handle(self, event_name: str, payload: bytes) -> None:
        """
        Decode a payload and send the notification email.

        Args:
            event_name: Routing key the message was published with
            payload: Raw message body
        """
        self.stats['messages_processed'] += 1
        logger.info(f"Handling event={event_name} payload={payload!r}")

        try:
            event = decode_notification(payload)
        except DecodeError as e:
            logger.error(f"Invalid notification payload for event={event_name}: {e}")
            self.stats['decode_errors'] += 1
            return

        if not event.recipient:
            logger.error("Email field is empty in the notification payload")
            self.stats['decode_errors'] += 1
            return

        logger.info(
            f"Attempting to send email from={self.email_service.mail_config.sender_address} "
            f"to={event.recipient} subject={self.subject}"
        )

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                self.email_service.send_plain,
                event.recipient,
                self.subject,
                event.body
            )
        except SendError as e:
            logger.error(f"Failed to send email to={event.recipient} error={e}")
            self.stats['emails_failed'] += 1
            return

        self.stats['emails_sent'] += 1
        logger.info(f"Email sent successfully to: {event.recipient}")

    def get_statistics(self) -> Dict[str, Any]:
        """Get handler statistics."""
        return self.stats.copy()
