# notifier/errors.py


class NotifierError(Exception):
    """Base class for all errors raised by the notifier service."""
    pass


class ConfigurationError(NotifierError):
    """Raised when required configuration is missing or invalid."""
    pass


class TopologyError(NotifierError):
    """Raised when the broker connection or queue topology cannot be set up."""
    pass


class ShutdownError(NotifierError):
    """Raised when closing the broker channel or connection fails."""
    pass


class DecodeError(NotifierError):
    """Raised when a message payload cannot be turned into a notification."""
    pass


class MalformedPayloadError(DecodeError):
    """Payload is not UTF-8 JSON or does not have the expected shape."""
    pass


class MissingRecipientError(DecodeError):
    """Payload parsed correctly but the `email` field is absent or empty."""
    pass


class SendError(NotifierError):
    """Raised when an email could not be delivered to the SMTP relay."""

    def __init__(self, message: str, recipient: str = ""):
        super().__init__(message)
        self.recipient = recipient


class SmtpConnectError(SendError):
    """The relay could not be reached or rejected authentication."""
    pass


class SmtpTransmitError(SendError):
    """Connected and authenticated, but the relay refused the message."""
    pass
