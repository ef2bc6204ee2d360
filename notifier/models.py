# notifier/models.py
import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from notifier.errors import MalformedPayloadError, MissingRecipientError


class NotificationEvent(BaseModel):
    """
    A single email notification decoded from a bus message.

    Wire format: {"email": "<recipient>", "message": "<body>"}
    """
    model_config = ConfigDict(strict=True, frozen=True, populate_by_name=True)

    recipient: str = Field(..., alias="email", min_length=1, description="Recipient email address")
    body: str = Field(..., alias="message", description="Plain-text message body, may be empty")


def decode_notification(payload: bytes) -> NotificationEvent:
    """
    Parse a raw message payload into a NotificationEvent.

    Args:
        payload: Message body as received from the broker

    Returns:
        The decoded notification

    Raises:
        MalformedPayloadError: Payload is not a UTF-8 JSON object with string fields
        MissingRecipientError: The `email` field is absent, null or empty
    """
    try:
        data = json.loads(payload.decode("utf-8"))
    except (ValueError, RecursionError) as e:
        raise MalformedPayloadError(f"Payload is not valid UTF-8 JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedPayloadError(
            f"Payload must be a JSON object, got {type(data).__name__}"
        )

    email = data.get("email")
    if email is None or email == "":
        raise MissingRecipientError("Email field is empty in the notification payload")

    try:
        return NotificationEvent.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise MalformedPayloadError(f"Invalid notification payload fields: {fields}") from e
