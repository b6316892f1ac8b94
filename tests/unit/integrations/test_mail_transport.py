"""
Unit tests for SMTP reply sending.
"""

import smtplib

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from src.integrations.errors import TransportError
from src.integrations.mail.config import MailboxConfig
from src.integrations.mail.transport import MailTransport


def _config(**overrides):
    values = dict(owner="u1", email="support@example.com", imap_host="imap.example.com", imap_port=993,
                  smtp_host="smtp.example.com", smtp_port=465, password="secret")
    values.update(overrides)
    return MailboxConfig(**values)


REPLY = {
    "original_message_id": "<orig@example.com>",
    "to": "Jane <jane@example.com>",
    "subject": "Re: SSO question",
    "text": "Yes, SSO is included.",
    "owner": "u1",
}


def test_build_message_threads_reply():
    message = MailTransport.build_message(_config(), REPLY)

    assert message["In-Reply-To"] == "<orig@example.com>"
    assert message["References"] == "<orig@example.com>"
    assert message["From"] == "support@example.com"
    assert message["Message-ID"].endswith("@example.com>")
    assert message.get_content().strip() == "Yes, SSO is included."


@pytest.mark.asyncio
class TestMailTransport:

    @patch('src.integrations.mail.transport.smtplib.SMTP_SSL')
    async def test_implicit_tls_on_465(self, mock_smtp_ssl):
        smtp = mock_smtp_ssl.return_value
        transport = MailTransport(config_loader=AsyncMock(return_value=_config()))

        result = await transport.send_reply(REPLY)

        mock_smtp_ssl.assert_called_once_with("smtp.example.com", 465, timeout=30)
        smtp.login.assert_called_once_with("support@example.com", "secret")
        smtp.send_message.assert_called_once()
        assert result["message_id"].startswith("<")

    @patch('src.integrations.mail.transport.smtplib.SMTP')
    async def test_starttls_on_587(self, mock_smtp):
        smtp = mock_smtp.return_value
        transport = MailTransport(config_loader=AsyncMock(return_value=_config(smtp_port=587)))

        await transport.send_reply(REPLY)

        smtp.starttls.assert_called_once()
        smtp.send_message.assert_called_once()

    @patch('src.integrations.mail.transport.smtplib.SMTP_SSL')
    async def test_oauth_uses_xoauth2(self, mock_smtp_ssl):
        smtp = mock_smtp_ssl.return_value
        smtp.docmd.return_value = (235, b"Accepted")
        config = _config(auth_type="oauth2", password=None, access_token="tok")
        transport = MailTransport(config_loader=AsyncMock(return_value=config))

        await transport.send_reply(REPLY)

        command, argument = smtp.docmd.call_args.args
        assert command == "AUTH" and argument.startswith("XOAUTH2 ")
        smtp.login.assert_not_called()

    @patch('src.integrations.mail.transport.smtplib.SMTP_SSL')
    async def test_auth_failure_becomes_transport_error(self, mock_smtp_ssl):
        smtp = mock_smtp_ssl.return_value
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        transport = MailTransport(config_loader=AsyncMock(return_value=_config()))

        with pytest.raises(TransportError):
            await transport.send_reply(REPLY)

    @patch('src.integrations.mail.transport.smtplib.SMTP_SSL')
    async def test_network_failure_becomes_transport_error(self, mock_smtp_ssl):
        mock_smtp_ssl.side_effect = ConnectionRefusedError("refused")
        transport = MailTransport(config_loader=AsyncMock(return_value=_config()))

        with pytest.raises(TransportError):
            await transport.send_reply(REPLY)
