"""
Tests for notification payload decoding.
"""

import pytest

from notifier.errors import DecodeError, MalformedPayloadError, MissingRecipientError
from notifier.models import NotificationEvent, decode_notification


class TestDecodeNotification:

    def test_valid_payload(self):
        event = decode_notification(b'{"email": "a@b.com", "message": "hi"}')

        assert isinstance(event, NotificationEvent)
        assert event.recipient == "a@b.com"
        assert event.body == "hi"

    def test_fields_are_kept_unchanged(self):
        payload = '{"email": " Bidder+1@Example.com ", "message": "Outbid on lot #7\\n\\u00e9t\\u00e9"}'.encode("utf-8")

        event = decode_notification(payload)

        assert event.recipient == " Bidder+1@Example.com "
        assert event.body == "Outbid on lot #7\nété"

    def test_empty_message_is_allowed(self):
        event = decode_notification(b'{"email": "a@b.com", "message": ""}')

        assert event.body == ""

    def test_extra_fields_are_ignored(self):
        event = decode_notification(b'{"email": "a@b.com", "message": "hi", "auctionId": 42}')

        assert event.recipient == "a@b.com"

    def test_missing_email(self):
        with pytest.raises(MissingRecipientError):
            decode_notification(b'{"message": "hi"}')

    def test_empty_email(self):
        with pytest.raises(MissingRecipientError):
            decode_notification(b'{"email": "", "message": "hi"}')

    def test_null_email(self):
        with pytest.raises(MissingRecipientError):
            decode_notification(b'{"email": null, "message": "hi"}')

    @pytest.mark.parametrize("payload", [
        b"not json",
        b"",
        b'{"email": "a@b.com", "message": "hi"',
        b"\xff\xfe\x00garbage",
        b'["a@b.com", "hi"]',
        b'"a@b.com"',
        b"null",
    ])
    def test_malformed_payloads(self, payload):
        with pytest.raises(MalformedPayloadError):
            decode_notification(payload)

    def test_non_string_email_is_malformed(self):
        with pytest.raises(MalformedPayloadError):
            decode_notification(b'{"email": 123, "message": "hi"}')

    def test_missing_message_is_malformed(self):
        with pytest.raises(MalformedPayloadError):
            decode_notification(b'{"email": "a@b.com"}')

    def test_non_string_message_is_malformed(self):
        with pytest.raises(MalformedPayloadError):
            decode_notification(b'{"email": "a@b.com", "message": {"text": "hi"}}')

    def test_deeply_nested_payload_is_malformed(self):
        payload = b"[" * 100000 + b"]" * 100000

        with pytest.raises(DecodeError):
            decode_notification(payload)

    def test_errors_share_a_base_class(self):
        assert issubclass(MalformedPayloadError, DecodeError)
        assert issubclass(MissingRecipientError, DecodeError)


class TestNotificationEvent:

    def test_is_immutable(self):
        event = decode_notification(b'{"email": "a@b.com", "message": "hi"}')

        with pytest.raises(Exception):
            event.recipient = "other@b.com"

    def test_can_be_built_by_field_name(self):
        event = NotificationEvent(recipient="a@b.com", body="hi")

        assert event.model_dump(by_alias=True) == {"email": "a@b.com", "message": "hi"}
