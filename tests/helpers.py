"""Test doubles shared across test modules."""

from datetime import datetime

from unittest.mock import AsyncMock, MagicMock

from src.email_processing.models import InboundMessage


def make_provider(result=None, error=None):
    """Generative provider whose `complete` returns `result` or raises `error`."""
    provider = MagicMock()
    provider.complete = AsyncMock(return_value=result, side_effect=error)
    return provider


def make_message(message_id="<sso-1@example.com>",
                 subject="SSO on Pro?",
                 sender="Jane Doe <jane@example.com>",
                 body="Hi, does the Pro plan include SSO? What does it cost?"):
    return InboundMessage(
        message_id=message_id,
        subject=subject,
        sender=sender,
        recipient="support@example.com",
        received_at=datetime(2025, 1, 1, 12, 0),
        body=body,
    )
