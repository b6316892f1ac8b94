"""
Inbound message model and RFC 822 parsing.

Turns raw bytes fetched over IMAP into an InboundMessage with a plain-text
body and a naive-UTC received timestamp.
"""

import email
import email.utils
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.header import decode_header, make_header
from email.message import Message
from typing import Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


@dataclass
class InboundMessage:
    """A fetched message, consumed once by the pipeline."""
    message_id: str
    subject: str
    sender: str
    recipient: str
    received_at: datetime
    body: str
    # Set when the raw source could not be parsed; the other fields are placeholders
    parse_error: Optional[str] = None

    @property
    def sender_name(self) -> Optional[str]:
        """Display name part of the From header, if any."""
        name, _ = email.utils.parseaddr(self.sender or "")
        return name or None

    @property
    def sender_address(self) -> str:
        _, address = email.utils.parseaddr(self.sender or "")
        return address or self.sender


def _decode(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return str(make_header(decode_header(value)))
    except Exception:
        return str(value)


def _parse_date(value: Optional[str]) -> datetime:
    """RFC 2822 date as naive UTC; unparseable dates fall back to now."""
    if value:
        try:
            parsed = email.utils.parsedate_to_datetime(value)
            if parsed.tzinfo:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed
        except (TypeError, ValueError):
            logger.warning(f"Unparseable Date header: {value!r}")
    return datetime.utcnow()


def unparseable_message(message_id: str, error: Exception) -> InboundMessage:
    """Placeholder for a fetched message whose source could not be parsed."""
    return InboundMessage(
        message_id=message_id,
        subject="",
        sender="",
        recipient="",
        received_at=datetime.utcnow(),
        body="",
        parse_error=str(error),
    )


def html_to_text(content: str) -> str:
    """Strip markup from an HTML body."""
    soup = BeautifulSoup(content, 'html.parser')
    for element in soup(["script", "style"]):
        element.decompose()
    lines = (line.strip() for line in soup.get_text().splitlines())
    return "\n".join(line for line in lines if line)


def _part_text(part: Message) -> str:
    payload = part.get_payload(decode=True)
    if payload is None:
        return ""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def extract_body(msg: Message) -> str:
    """Prefer the first text/plain part; fall back to text/html converted to text."""
    html = None
    for part in msg.walk():
        if part.is_multipart() or part.get_content_disposition() == "attachment":
            continue
        content_type = part.get_content_type()
        if content_type == "text/plain":
            return _part_text(part).strip()
        if content_type == "text/html" and html is None:
            html = _part_text(part)
    return html_to_text(html) if html else ""


def parse_message(raw: bytes, fallback_id: Optional[str] = None) -> InboundMessage:
    """
    Parse raw RFC 822 bytes.

    Args:
        raw: Full message source
        fallback_id: Identifier used when the Message-ID header is missing

    Raises:
        ValueError: If the message has neither a Message-ID nor a fallback id
    """
    msg = email.message_from_bytes(raw)
    message_id = (msg.get("Message-ID") or "").strip() or fallback_id
    if not message_id:
        raise ValueError("Message has no Message-ID")

    return InboundMessage(
        message_id=message_id,
        subject=_decode(msg.get("Subject")),
        sender=_decode(msg.get("From")),
        recipient=_decode(msg.get("To")),
        received_at=_parse_date(msg.get("Date")),
        body=extract_body(msg),
    )
