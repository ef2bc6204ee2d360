# notifier/email_service.py
import logging
import smtplib
from email.errors import MessageError
from email.header import Header
from email.mime.text import MIMEText

from notifier.config import MailRelayConfig
from notifier.errors import SmtpConnectError, SmtpTransmitError

logger = logging.getLogger(__name__)


def mask_secret(value: str) -> str:
    """
    Mask a credential for logging.

    Values of four characters or fewer are fully masked; longer values keep
    only their last four characters.

    Args:
        value: The secret to mask

    Returns:
        Masked string of the same length
    """
    if not value:
        return ""
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


class EmailService:
    """
    Sends single-recipient emails through an authenticated SMTP relay.

    Every send opens its own connection and closes it afterwards; nothing is
    pooled or shared between calls, so one instance may be used from any
    single caller at a time and several instances may run concurrently.
    """

    def __init__(self, mail_config: MailRelayConfig):
        """
        Initialize the email service.

        Args:
            mail_config: Resolved relay configuration

        Raises:
            ConfigurationError: If the relay credentials are missing
        """
        mail_config.validate()
        self.mail_config = mail_config

    def _display_password(self) -> str:
        if self.mail_config.show_secrets:
            return self.mail_config.password
        return mask_secret(self.mail_config.password)

    def _create_smtp_connection(self) -> smtplib.SMTP:
        """
        Connect and authenticate to the relay.

        Raises:
            SmtpConnectError: Relay unreachable, TLS failed or login rejected
        """
        cfg = self.mail_config
        logger.info(
            f"SMTP: dialing host={cfg.host} port={cfg.port} "
            f"username={cfg.username} password={self._display_password()}"
        )

        smtp = None
        try:
            if cfg.use_ssl:
                smtp = smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=cfg.timeout)
            else:
                smtp = smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout)
                if cfg.use_tls:
                    smtp.starttls()
            smtp.login(cfg.username, cfg.password)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP: dial error: {e}")
            if smtp is not None:
                self._close_quietly(smtp)
            raise SmtpConnectError(
                f"Could not connect to SMTP relay {cfg.host}:{cfg.port}: {e}"
            ) from e

        logger.info(f"SMTP: dial succeeded to host={cfg.host} port={cfg.port} username={cfg.username}")
        return smtp

    def _close_quietly(self, smtp: smtplib.SMTP):
        try:
            smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"SMTP: failed to close connection: {e}")
            smtp.close()

    def _build_message(self, to: str, subject: str, body: str, subtype: str) -> MIMEText:
        msg = MIMEText(body, subtype, "utf-8")
        msg["Subject"] = Header(subject, "utf-8")
        msg["From"] = self.mail_config.sender_address
        msg["To"] = to
        return msg

    def _send(self, to: str, subject: str, body: str, subtype: str):
        try:
            msg = self._build_message(to, subject, body, subtype)
        except (UnicodeError, MessageError) as e:
            logger.error(f"SMTP: could not build message to={to}: {e}")
            raise SmtpTransmitError(f"Could not build message to {to}: {e}", recipient=to) from e

        smtp = self._create_smtp_connection()
        try:
            kind = "HTML message" if subtype == "html" else "message"
            logger.info(f"SMTP: attempting to send {kind} to={to} subject={subject}")
            smtp.send_message(
                msg,
                from_addr=self.mail_config.sender_address,
                to_addrs=[to]
            )
        except (smtplib.SMTPException, OSError, UnicodeError) as e:
            logger.error(f"SMTP: send error: {e}")
            raise SmtpTransmitError(f"Relay rejected message to {to}: {e}", recipient=to) from e
        finally:
            self._close_quietly(smtp)

        logger.info(f"SMTP: send OK to={to}")

    def send_plain(self, to: str, subject: str, body: str):
        """
        Send a text/plain email to a single recipient.

        Args:
            to: Recipient address
            subject: Subject line
            body: Plain-text body

        Raises:
            SmtpConnectError: If connecting or authenticating fails
            SmtpTransmitError: If the relay refuses the message
        """
        self._send(to, subject, body, "plain")

    def send_html(self, to: str, subject: str, html: str):
        """
        Send a text/html email to a single recipient.

        Raises:
            SmtpConnectError: If connecting or authenticating fails
            SmtpTransmitError: If the relay refuses the message
        """
        self._send(to, subject, html, "html")

    def test_smtp_connection(self) -> bool:
        """
        Test SMTP connection and authentication.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            smtp = self._create_smtp_connection()
        except SmtpConnectError:
            return False
        self._close_quietly(smtp)
        logger.info("SMTP connection test successful")
        return True
