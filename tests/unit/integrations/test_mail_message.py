"""
Unit tests for RFC 822 parsing into InboundMessage.
"""

from datetime import datetime
from email.message import EmailMessage

import pytest

from src.integrations.mail.message import InboundMessage, html_to_text, parse_message


def _raw(**headers):
    message = EmailMessage()
    for name, value in headers.items():
        message[name.replace("_", "-")] = value
    message.set_content("Do you offer SSO on the Pro plan?")
    return message


def test_parse_plain_message():
    raw = _raw(
        Message_ID="<abc@example.com>",
        Subject="SSO question",
        From="Jane Doe <jane@example.com>",
        To="support@example.com",
        Date="Wed, 01 Jan 2025 12:00:00 +0200",
    ).as_bytes()

    message = parse_message(raw)

    assert message.message_id == "<abc@example.com>"
    assert message.subject == "SSO question"
    assert message.sender_name == "Jane Doe"
    assert message.sender_address == "jane@example.com"
    assert message.received_at == datetime(2025, 1, 1, 10, 0)
    assert message.body == "Do you offer SSO on the Pro plan?"


def test_multipart_prefers_plain_text_and_skips_attachments():
    message = _raw(Message_ID="<m@example.com>", From="a@example.com")
    message.add_alternative("<p>HTML version</p>", subtype="html")
    message.add_attachment(b"binary", maintype="application", subtype="octet-stream",
                           filename="invoice.pdf")

    parsed = parse_message(message.as_bytes())

    assert parsed.body == "Do you offer SSO on the Pro plan?"


def test_html_only_body_converted_to_text():
    message = EmailMessage()
    message["Message-ID"] = "<h@example.com>"
    message.set_content("<html><style>p {}</style><body>\n<p>Hello</p>\n<p>World</p>\n</body></html>",
                        subtype="html")

    assert parse_message(message.as_bytes()).body == "Hello\nWorld"


def test_encoded_subject_decoded():
    raw = b"Message-ID: <e@example.com>\r\nSubject: =?utf-8?q?Caf=C3=A9_hours?=\r\n\r\nBody\r\n"

    assert parse_message(raw).subject == "Café hours"


def test_missing_message_id_uses_fallback():
    raw = b"Subject: no id\r\n\r\nBody\r\n"

    assert parse_message(raw, fallback_id="INBOX:42").message_id == "INBOX:42"
    with pytest.raises(ValueError):
        parse_message(raw)


def test_bad_date_falls_back_to_now():
    raw = b"Message-ID: <d@example.com>\r\nDate: not a date\r\n\r\nBody\r\n"

    assert (datetime.utcnow() - parse_message(raw).received_at).total_seconds() < 60


def test_sender_without_display_name():
    message = InboundMessage("<x>", "s", "jane@example.com", "r", datetime.utcnow(), "b")

    assert message.sender_name is None
    assert message.sender_address == "jane@example.com"


def test_html_to_text_drops_scripts():
    assert html_to_text("<div>Hi<script>alert(1)</script></div>") == "Hi"
