"""
SMTP reply transport.

Sends threaded replies from the owner's mailbox using smtplib. Port 465 uses
implicit TLS; any other port is upgraded with STARTTLS when `ssl` is set.
"""

import asyncio
import base64
import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid, formatdate
from typing import Any, Awaitable, Callable, Dict, Optional

from src.integrations.errors import TransportError
from src.integrations.mail.config import MailboxConfig, load_mailbox_config

logger = logging.getLogger(__name__)


class MailTransport:
    """SMTP collaborator used by the pipeline and by manual sends of held replies."""

    def __init__(self,
                 config_loader: Optional[Callable[[str], Awaitable[MailboxConfig]]] = None,
                 timeout: float = 30):
        self.config_loader = config_loader or load_mailbox_config
        self.timeout = timeout

    async def send_reply(self, reply: Dict[str, Any]) -> Dict[str, str]:
        """
        Send a reply.

        Args:
            reply: {original_message_id, to, subject, text, owner}

        Returns:
            {"message_id": <Message-ID of the sent reply>}

        Raises:
            TransportError: On authentication or network failure
            MailboxConfigError: If the owner has no usable mailbox settings
        """
        config = await self.config_loader(reply["owner"])
        message = self.build_message(config, reply)
        try:
            await asyncio.to_thread(self._send, config, message)
        except (smtplib.SMTPException, OSError) as e:
            raise TransportError(f"SMTP send via {config.smtp_host} failed: {e}") from e

        logger.info(f"Reply sent for user {reply['owner']}")
        return {"message_id": message["Message-ID"]}

    @staticmethod
    def build_message(config: MailboxConfig, reply: Dict[str, Any]) -> EmailMessage:
        message = EmailMessage()
        message["From"] = config.email
        message["To"] = reply["to"]
        message["Subject"] = reply["subject"]
        message["Date"] = formatdate(localtime=False)
        message["Message-ID"] = make_msgid(domain=config.email.rsplit("@", 1)[-1])
        original = reply.get("original_message_id")
        if original:
            message["In-Reply-To"] = original
            message["References"] = original
        message.set_content(reply["text"])
        return message

    def _send(self, config: MailboxConfig, message: EmailMessage) -> None:
        if config.ssl and config.smtp_port == 465:
            smtp = smtplib.SMTP_SSL(config.smtp_host, config.smtp_port, timeout=self.timeout)
        else:
            smtp = smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=self.timeout)
        with smtp:
            if config.ssl and config.smtp_port != 465:
                smtp.starttls()
            if config.uses_oauth:
                auth = f"user={config.email}\1auth=Bearer {config.access_token}\1\1"
                smtp.ehlo()
                code, response = smtp.docmd("AUTH", "XOAUTH2 " + base64.b64encode(auth.encode()).decode())
                if code != 235:
                    raise smtplib.SMTPAuthenticationError(code, response)
            else:
                smtp.login(config.email, config.password)
            smtp.send_message(message)
